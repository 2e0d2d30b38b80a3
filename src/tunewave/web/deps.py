from fastapi import HTTPException, Request

from tunewave.domain.library.lookup import TrackCatalog
from tunewave.domain.playback.coordinator import SessionCoordinator


def get_coordinator(request: Request) -> SessionCoordinator:
    """FastAPI dependency for the session coordinator."""
    return request.app.state.coordinator


def get_catalog(request: Request) -> TrackCatalog:
    """FastAPI dependency for catalog browsing."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(503, "Catalog not configured")
    return catalog
