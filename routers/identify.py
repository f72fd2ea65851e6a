import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from routers.dependencies import get_pipeline
from services.discovery_pipeline import DiscoveryPipeline
from services.models import DiscoveryOutcome

router = APIRouter()

STATUS_BY_KIND: Dict[str, int] = {
    "not_authenticated": 401,
    "not_a_plant": 422,
    "network_error": 502,
    "service_error": 502,
    "storage_error": 500,
    "internal_error": 500,
    "cancelled": 409,
}


def outcome_payload(outcome: DiscoveryOutcome) -> Dict[str, Any]:
    data = outcome.model_dump()
    if outcome.record is not None:
        data["image_url"] = f"/discoveries/{outcome.record.id}/image"
    return data


@router.post("/identify_plant")
async def identify_plant_endpoint(
    file: UploadFile = File(...),
    pipeline: DiscoveryPipeline = Depends(get_pipeline),
):
    contents = await file.read()
    if not contents:
        return JSONResponse(
            {"success": False, "record": None, "error": "Empty upload.", "error_kind": None},
            status_code=400,
        )

    # runs on the I/O pool; the event loop only waits for the future
    outcome = await asyncio.wrap_future(pipeline.submit(contents))

    status = 200 if outcome.success else STATUS_BY_KIND.get(outcome.error_kind or "", 500)
    return JSONResponse(outcome_payload(outcome), status_code=status)
