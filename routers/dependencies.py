from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from config.settings import Preferences, Session, Settings
from services.discovery_pipeline import DiscoveryPipeline
from services.discovery_store import DiscoveryDatabase, DiscoveryStore
from services.plantnet_service import PlantNetClient
from services.wiki_service import WikiClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> DiscoveryDatabase:
    return request.app.state.database


def get_preferences(request: Request) -> Preferences:
    return request.app.state.preferences


def get_session(x_user_id: Optional[str] = Header(default=None)) -> Session:
    # identity comes from the app's auth layer; blank means signed out
    session = Session()
    if x_user_id and x_user_id.strip():
        session.sign_in(x_user_id)
    return session


def require_session(session: Session = Depends(get_session)) -> Session:
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return session


def get_store(
    database: DiscoveryDatabase = Depends(get_database),
    session: Session = Depends(get_session),
) -> DiscoveryStore:
    return DiscoveryStore(database, session)


# requests.Session is not shared across worker threads: one client per run
def get_identifier(settings: Settings = Depends(get_settings)) -> PlantNetClient:
    return PlantNetClient(settings)


def get_enricher(settings: Settings = Depends(get_settings)) -> WikiClient:
    return WikiClient(settings)


def get_pipeline(
    request: Request,
    settings: Settings = Depends(get_settings),
    session: Session = Depends(get_session),
    store: DiscoveryStore = Depends(get_store),
    identifier: PlantNetClient = Depends(get_identifier),
    enricher: WikiClient = Depends(get_enricher),
) -> DiscoveryPipeline:
    return DiscoveryPipeline(
        settings=settings,
        session=session,
        store=store,
        identifier=identifier,
        enricher=enricher,
        executor=request.app.state.executor,
    )
