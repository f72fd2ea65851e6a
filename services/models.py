from typing import List, Optional

from pydantic import BaseModel, Field

from services.errors import DiscoveryError


# -------------------------
# Journal
# -------------------------
class DiscoveryRecord(BaseModel):
    id: Optional[int] = None
    user_id: str = Field(..., min_length=1)
    plant_name: str = Field(..., min_length=1)
    ai_fact: str = ""
    local_image_path: str
    timestamp: int = Field(..., ge=0)  # epoch millis


# -------------------------
# Identification
# -------------------------
class Candidate(BaseModel):
    scientific_name: str
    common_names: List[str] = Field(default_factory=list)
    score: float = 0.0


class Selection(BaseModel):
    plant_name: str
    description: str
    candidate: Candidate


# -------------------------
# Pipeline result
# -------------------------
class DiscoveryOutcome(BaseModel):
    success: bool
    record: Optional[DiscoveryRecord] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def ok(cls, record: DiscoveryRecord) -> "DiscoveryOutcome":
        return cls(success=True, record=record)

    @classmethod
    def failed(cls, exc: DiscoveryError) -> "DiscoveryOutcome":
        return cls(success=False, error=exc.message, error_kind=exc.kind)
