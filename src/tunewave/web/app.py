"""FastAPI application: builds the session coordinator and exposes it over HTTP."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from tunewave import __version__
from tunewave.core.config import Config, get_database_path, load_config
from tunewave.core.storage import SqliteStore
from tunewave.domain.library.lookup import CatalogLookup, TrackCatalog
from tunewave.domain.playback.coordinator import SessionCoordinator
from tunewave.domain.playback.engine import EngineAdapter
from tunewave.domain.playback.mpv_widget import MpvWidget
from tunewave.domain.playback.preferences import PreferenceStore


def build_coordinator(config: Config) -> SessionCoordinator:
    """Wire the production collaborators into a coordinator."""
    lookup = CatalogLookup(config)
    store = SqliteStore(get_database_path(config))
    widget = MpvWidget.from_config(config.player) if config.player.enable_remote else None
    adapter = EngineAdapter(widget, ready_timeout=config.player.ready_timeout)
    return SessionCoordinator(config, lookup, PreferenceStore(store), adapter)


def create_app(
    config: Optional[Config] = None,
    coordinator: Optional[SessionCoordinator] = None,
    catalog: Optional[TrackCatalog] = None,
) -> FastAPI:
    """Create the API app; the coordinator lives for the app's lifespan.

    Args:
        config: Configuration (loaded from disk when None)
        coordinator: Prebuilt coordinator (built from config when None)
        catalog: Catalog for the search routes (the coordinator's lookup when None)
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session = coordinator or build_coordinator(config)
        app.state.coordinator = session
        app.state.catalog = catalog or (
            session.lookup if isinstance(session.lookup, CatalogLookup) else None
        )
        await session.start()
        await session.load_new_releases()
        try:
            yield
        finally:
            await session.shutdown()

    app = FastAPI(title="tunewave", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.debug(f"Rejected {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"detail": exc.errors()})

    # Include routers
    from tunewave.web.routers import catalog as catalog_router
    from tunewave.web.routers import player

    app.include_router(player.router, prefix="/api/player", tags=["player"])
    app.include_router(catalog_router.router, prefix="/api/catalog", tags=["catalog"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
