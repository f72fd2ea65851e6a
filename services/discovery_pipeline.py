import logging
import threading
import time
from concurrent.futures import Executor, Future
from typing import Optional

from config.settings import Session, Settings
from services.candidate_selector import Enricher, select_candidate
from services.discovery_store import DiscoveryStore
from services.errors import Cancelled, DiscoveryError, NotAuthenticated, StorageError
from services.models import DiscoveryOutcome, DiscoveryRecord
from services.plantnet_service import PlantNetClient
from utils.image_utils import (
    encode_jpeg,
    remove_quietly,
    user_image_dir,
    write_exclusive,
    write_staging_copy,
)

logger = logging.getLogger(__name__)


class CancellationToken:
    """Checked between stages; an in-flight HTTP call is never interrupted."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        if self._event.is_set():
            raise Cancelled()


def now_millis() -> int:
    return int(time.time() * 1000)


class DiscoveryPipeline:
    """
    photo -> Pl@ntNet -> candidate check against Wikipedia -> journal.

    One call to identify_and_save is one run; runs share nothing but the
    store, so any number of them may be in flight on the executor.
    """

    def __init__(
        self,
        settings: Settings,
        session: Session,
        store: DiscoveryStore,
        identifier: PlantNetClient,
        enricher: Enricher,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings
        self.session = session
        self.store = store
        self.identifier = identifier
        self.enricher = enricher
        self.executor = executor

    def submit(self, image_bytes: bytes, cancel: Optional[CancellationToken] = None) -> "Future[DiscoveryOutcome]":
        if self.executor is None:
            raise RuntimeError("DiscoveryPipeline was built without an executor")
        return self.executor.submit(self.identify_and_save, image_bytes, cancel)

    def identify_and_save(self, image_bytes: bytes, cancel: Optional[CancellationToken] = None) -> DiscoveryOutcome:
        cancel = cancel or CancellationToken()
        try:
            record = self._run(image_bytes, cancel)
        except DiscoveryError as e:
            log = logger.info if e.kind == "not_a_plant" else logger.warning
            log("Discovery run failed (%s): %s", e.kind, e.message)
            return DiscoveryOutcome.failed(e)
        except Exception as e:
            logger.exception("Unexpected error during discovery run")
            return DiscoveryOutcome.failed(DiscoveryError(f"Unexpected error: {e}"))
        return DiscoveryOutcome.ok(record)

    def _run(self, image_bytes: bytes, cancel: CancellationToken) -> DiscoveryRecord:
        # 1. Authenticate
        user_id = self.session.user_id
        if not user_id:
            raise NotAuthenticated()
        logger.info("Discovery run started for user %s", user_id)

        # 2. Stage image
        cancel.check()
        try:
            jpeg = encode_jpeg(image_bytes, quality=self.settings.jpeg_quality)
            write_staging_copy(self.settings.cache_dir, jpeg)
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not stage image: {e}") from e

        # 3. Identify
        cancel.check()
        candidates = self.identifier.identify(jpeg)

        # 4. Select (drives the Wikipedia lookups)
        cancel.check()
        selection = select_candidate(candidates, self.enricher)

        # 5. Persist image
        cancel.check()
        timestamp = now_millis()
        try:
            folder = user_image_dir(self.settings.images_dir, user_id)
            image_path = write_exclusive(folder, jpeg, timestamp)
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not save image: {e}") from e

        # 6. Insert record
        record = DiscoveryRecord(
            user_id=user_id,
            plant_name=selection.plant_name,
            ai_fact=selection.description,
            local_image_path=str(image_path),
            timestamp=timestamp,
        )
        try:
            new_id = self.store.insert(record)
        except DiscoveryError:
            remove_quietly(image_path)
            raise
        except Exception as e:
            remove_quietly(image_path)
            raise StorageError(f"Could not save discovery: {e}") from e

        # 7. Return
        saved = record.model_copy(update={"id": new_id})
        logger.info("Saved discovery %s (%s)", saved.id, saved.plant_name)
        return saved
