import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import Preferences, Settings
from routers.identify import router as identify_router
from routers.journal import router as journal_router
from routers.preferences import router as preferences_router
from services.discovery_store import DiscoveryDatabase


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.executor.shutdown(wait=True)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings.images_dir.mkdir(parents=True, exist_ok=True)
    settings.cache_dir.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="MyBloom", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # restrict later if you want
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.database = DiscoveryDatabase(settings.database_path)
    app.state.preferences = Preferences(settings.preferences_path)
    app.state.preferences.init()
    # network + file I/O for identification runs happens here, never on the loop
    app.state.executor = ThreadPoolExecutor(
        max_workers=settings.pipeline_workers,
        thread_name_prefix="discovery",
    )

    # Health check (useful for uptime pings + debugging)
    @app.get("/health")
    async def health():
        return {"ok": True}

    # Routers
    app.include_router(identify_router)
    app.include_router(journal_router)
    app.include_router(preferences_router)

    return app


app = create_app()
