"""Catalog router: track search and lookup for clients building play requests."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ...domain.library.lookup import TrackCatalog
from ..deps import get_catalog
from ..schemas import TrackModel

router = APIRouter()


@router.get("/search", response_model=List[TrackModel])
async def search_tracks(
    q: str = Query(min_length=1), catalog: TrackCatalog = Depends(get_catalog)
):
    tracks = await catalog.search_tracks(q)
    return [TrackModel.from_track(track) for track in tracks]


@router.get("/tracks/{track_id}", response_model=TrackModel)
async def get_track(track_id: str, catalog: TrackCatalog = Depends(get_catalog)):
    track = await catalog.get_track(track_id)
    if track is None:
        raise HTTPException(404, f"Track {track_id} not found")
    return TrackModel.from_track(track)
