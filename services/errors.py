class DiscoveryError(Exception):
    """Base for every failure a discovery run can end with."""

    kind = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotAuthenticated(DiscoveryError):
    kind = "not_authenticated"

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class NetworkError(DiscoveryError):
    kind = "network_error"


class ServiceError(DiscoveryError):
    kind = "service_error"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotAPlant(DiscoveryError):
    """Expected, user-facing rejection: nothing in the photo could be named."""

    kind = "not_a_plant"

    def __init__(
        self,
        message: str = (
            "Only plants can be identified by this application. "
            "Please submit a photo of a plant."
        ),
    ):
        super().__init__(message)


class StorageError(DiscoveryError):
    kind = "storage_error"


class Cancelled(DiscoveryError):
    kind = "cancelled"

    def __init__(self, message: str = "Identification cancelled"):
        super().__init__(message)
