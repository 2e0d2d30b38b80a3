"""Player router: every session operation plus the state snapshot."""

from typing import List

from fastapi import APIRouter, Depends
from loguru import logger

from ...domain.playback.coordinator import SessionCoordinator
from ..deps import get_coordinator
from ..schemas import (
    FlagResponse,
    IdentityRequest,
    LikeResponse,
    MoveRequest,
    PlayerState,
    SeekRequest,
    ToggleRequest,
    TrackModel,
    TrackRequest,
    TracksRequest,
    VolumeRequest,
)

router = APIRouter()


async def _state(coordinator: SessionCoordinator) -> PlayerState:
    # Apply engine events triggered by the request before reporting
    await coordinator.settle(background=False)
    return PlayerState.model_validate(coordinator.snapshot())


@router.get("/state", response_model=PlayerState)
async def get_state(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return PlayerState.model_validate(coordinator.snapshot())


@router.post("/play", response_model=PlayerState)
async def play(request: TrackRequest, coordinator: SessionCoordinator = Depends(get_coordinator)):
    logger.info(f"Play requested: {request.track.id}")
    await coordinator.play(request.track.to_track())
    return await _state(coordinator)


@router.post("/pause", response_model=PlayerState)
async def pause(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.pause()
    return await _state(coordinator)


@router.post("/resume", response_model=PlayerState)
async def resume(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.resume()
    return await _state(coordinator)


@router.post("/toggle", response_model=PlayerState)
async def toggle_play(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.toggle_play()
    return await _state(coordinator)


@router.post("/next", response_model=PlayerState)
async def next_track(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.play_next()
    return await _state(coordinator)


@router.post("/prev", response_model=PlayerState)
async def prev_track(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.play_previous()
    return await _state(coordinator)


@router.post("/seek", response_model=PlayerState)
async def seek(request: SeekRequest, coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.seek(request.position_seconds)
    return await _state(coordinator)


@router.post("/volume", response_model=PlayerState)
async def set_volume(
    request: VolumeRequest, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    await coordinator.set_volume(request.volume)
    return await _state(coordinator)


@router.post("/volume/up", response_model=PlayerState)
async def volume_up(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.volume_up()
    return await _state(coordinator)


@router.post("/volume/down", response_model=PlayerState)
async def volume_down(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.volume_down()
    return await _state(coordinator)


@router.post("/mute", response_model=PlayerState)
async def toggle_mute(coordinator: SessionCoordinator = Depends(get_coordinator)):
    await coordinator.toggle_mute()
    return await _state(coordinator)


@router.post("/shuffle", response_model=FlagResponse)
async def toggle_shuffle(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return FlagResponse(enabled=coordinator.toggle_shuffle())


@router.post("/repeat", response_model=FlagResponse)
async def toggle_repeat(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return FlagResponse(enabled=coordinator.toggle_repeat())


@router.post("/continuous", response_model=FlagResponse)
async def set_continuous_playback(
    request: ToggleRequest, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    coordinator.set_continuous_playback(request.enabled)
    return FlagResponse(enabled=request.enabled)


@router.post("/offline", response_model=FlagResponse)
async def set_offline_mode(
    request: ToggleRequest, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    coordinator.set_offline_mode(request.enabled)
    return FlagResponse(enabled=request.enabled)


@router.post("/queue", response_model=PlayerState)
async def add_to_queue(
    request: TrackRequest, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    coordinator.add_to_queue(request.track.to_track())
    return await _state(coordinator)


@router.post("/queue/batch", response_model=PlayerState)
async def add_tracks_to_queue(
    request: TracksRequest, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    coordinator.add_tracks_to_queue(track.to_track() for track in request.tracks)
    return await _state(coordinator)


@router.post("/queue/move", response_model=PlayerState)
async def move_in_queue(
    request: MoveRequest, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    coordinator.move_in_queue(request.old_index, request.new_index)
    return await _state(coordinator)


@router.delete("/queue/{index}", response_model=PlayerState)
async def remove_from_queue(index: int, coordinator: SessionCoordinator = Depends(get_coordinator)):
    coordinator.remove_from_queue(index)
    return await _state(coordinator)


@router.delete("/queue", response_model=PlayerState)
async def clear_queue(coordinator: SessionCoordinator = Depends(get_coordinator)):
    coordinator.clear_queue()
    return await _state(coordinator)


@router.post("/like", response_model=LikeResponse)
async def toggle_like(request: TrackRequest, coordinator: SessionCoordinator = Depends(get_coordinator)):
    liked = await coordinator.toggle_like(request.track.to_track())
    return LikeResponse(track_id=request.track.id, liked=liked)


@router.get("/liked", response_model=List[TrackModel])
async def liked_tracks(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return [TrackModel.from_track(track) for track in coordinator.liked_tracks()]


@router.get("/liked/{track_id}", response_model=LikeResponse)
async def is_liked(track_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    return LikeResponse(track_id=track_id, liked=coordinator.is_liked(track_id))


@router.post("/identity", response_model=PlayerState)
async def set_identity(
    request: IdentityRequest, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    await coordinator.set_identity(request.user_id)
    return await _state(coordinator)


@router.post("/new-releases", response_model=List[TrackModel])
async def load_new_releases(coordinator: SessionCoordinator = Depends(get_coordinator)):
    releases = await coordinator.load_new_releases()
    return [TrackModel.from_track(track) for track in releases]
