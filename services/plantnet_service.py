import logging
from typing import Any, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from config.settings import Settings
from services.errors import NetworkError, ServiceError
from services.models import Candidate

logger = logging.getLogger(__name__)


# =========================
# Response shape
# =========================
class _Species(BaseModel):
    scientificNameWithoutAuthor: Optional[str] = None
    scientificName: Optional[str] = None
    commonNames: Optional[List[Optional[str]]] = None


class _Result(BaseModel):
    score: Optional[float] = None
    species: Optional[_Species] = None


class _IdentifyResponse(BaseModel):
    results: Optional[List[_Result]] = Field(default=None)


def parse_identification(payload: Any) -> List[Candidate]:
    """
    Turns a decoded Pl@ntNet body into ranked candidates.
    - no/empty results -> [] (the caller reads that as "no match")
    - anything that does not fit the shape -> ServiceError
    Rank order is kept as returned.
    """
    if not isinstance(payload, dict):
        raise ServiceError("Pl@ntNet returned a malformed response.")
    try:
        parsed = _IdentifyResponse.model_validate(payload)
    except ValidationError as e:
        raise ServiceError(f"Pl@ntNet returned a malformed response: {e.error_count()} error(s).") from e

    candidates: List[Candidate] = []
    for result in parsed.results or []:
        species = result.species
        if species is None:
            continue
        scientific = species.scientificNameWithoutAuthor or species.scientificName or ""
        common = [str(x) for x in (species.commonNames or []) if x and str(x).strip()]
        candidates.append(Candidate(
            scientific_name=scientific,
            common_names=common,
            score=float(result.score or 0.0),
        ))
    return candidates


# =========================
# Client
# =========================
class PlantNetClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.http = session or requests.Session()

        if not settings.plantnet_api_key:
            logger.warning("PLANTNET_API_KEY is not set; identification requests will be rejected.")

    def identify(self, image_bytes: bytes) -> List[Candidate]:
        files = [("images", ("plant.jpg", image_bytes, "image/jpeg"))]
        data = {"organs": "auto"}

        try:
            response = self.http.post(
                self.settings.plantnet_url,
                params={"api-key": self.settings.plantnet_api_key},
                files=files,
                data=data,
                timeout=self.settings.plantnet_timeout,
            )
        except requests.Timeout as e:
            raise NetworkError("Pl@ntNet request timed out.") from e
        except requests.RequestException as e:
            raise NetworkError(f"Could not reach Pl@ntNet: {e}") from e

        # 404 is how Pl@ntNet says "Species not found"
        if response.status_code == 404:
            logger.info("Pl@ntNet found no species for this image")
            return []

        if response.status_code >= 400:
            raise ServiceError(
                f"Pl@ntNet error {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceError("Pl@ntNet returned a non-JSON response.") from e

        candidates = parse_identification(payload)
        logger.info(
            "Pl@ntNet returned %d candidate(s)%s",
            len(candidates),
            f", top: {candidates[0].scientific_name} ({candidates[0].score:.3f})" if candidates else "",
        )
        return candidates


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or "unknown error"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or response.reason or "unknown error")
    return response.reason or "unknown error"
