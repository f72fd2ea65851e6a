from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from config.settings import Session
from routers.dependencies import get_store, require_session
from services.discovery_store import DiscoveryStore
from services.models import DiscoveryRecord

router = APIRouter(prefix="/discoveries")


def _get_or_404(store: DiscoveryStore, discovery_id: int) -> DiscoveryRecord:
    record = store.get_by_id(discovery_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Discovery not found")
    return record


@router.get("", response_model=List[DiscoveryRecord])
def list_discoveries(
    q: Optional[str] = None,
    _: Session = Depends(require_session),
    store: DiscoveryStore = Depends(get_store),
):
    # blank query shows the whole journal, like the journal screen does
    if q is None or not q.strip():
        with store.list_all() as live:
            return live.items
    return store.search(q.strip())


@router.get("/count")
def count_discoveries(
    _: Session = Depends(require_session),
    store: DiscoveryStore = Depends(get_store),
):
    return {"success": True, "count": store.count()}


@router.get("/{discovery_id}", response_model=DiscoveryRecord)
def get_discovery(
    discovery_id: int,
    _: Session = Depends(require_session),
    store: DiscoveryStore = Depends(get_store),
):
    return _get_or_404(store, discovery_id)


@router.get("/{discovery_id}/image")
def get_discovery_image(
    discovery_id: int,
    _: Session = Depends(require_session),
    store: DiscoveryStore = Depends(get_store),
):
    record = _get_or_404(store, discovery_id)
    if not Path(record.local_image_path).is_file():
        raise HTTPException(status_code=404, detail="Image file missing")
    return FileResponse(record.local_image_path, media_type="image/jpeg")


@router.delete("/{discovery_id}")
def delete_discovery(
    discovery_id: int,
    _: Session = Depends(require_session),
    store: DiscoveryStore = Depends(get_store),
):
    record = _get_or_404(store, discovery_id)
    store.delete(record)
    return {"success": True, "deleted": discovery_id}
