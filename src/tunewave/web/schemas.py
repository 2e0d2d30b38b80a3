"""Request and response bodies for the web API (camelCase on the wire)."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tunewave.domain.library.models import Track


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArtistModel(CamelModel):
    id: Optional[str] = None
    name: str


class AlbumModel(CamelModel):
    id: Optional[str] = None
    name: str
    image_url: Optional[str] = None


class TrackModel(CamelModel):
    id: str = Field(min_length=1)
    title: str
    artists: List[ArtistModel] = []
    album: Optional[AlbumModel] = None
    duration_ms: int = Field(0, ge=0)
    uri: Optional[str] = None

    def to_track(self) -> Track:
        return Track.from_dict(self.model_dump())

    @classmethod
    def from_track(cls, track: Track) -> "TrackModel":
        return cls.model_validate(track.to_dict())


class VideoModel(CamelModel):
    video_id: str
    title: str = ""
    thumbnail_url: Optional[str] = None


class PlayerState(CamelModel):
    """Snapshot of the playback session."""

    current_track: Optional[TrackModel] = None
    current_video: Optional[VideoModel] = None
    play_state: str
    progress_seconds: float
    duration_seconds: float
    queue: List[TrackModel] = []
    related_lookahead: List[TrackModel] = []
    recently_played: List[TrackModel] = []
    liked_track_ids: List[str] = []
    shuffled: bool
    repeated: bool
    continuous_playback: bool
    offline_mode: bool
    error_count: int
    volume: int
    backing: Optional[str] = None


class TrackRequest(CamelModel):
    track: TrackModel


class TracksRequest(CamelModel):
    tracks: List[TrackModel]


class SeekRequest(CamelModel):
    position_seconds: float = Field(ge=0)


class VolumeRequest(CamelModel):
    volume: int = Field(ge=0, le=100)


class ToggleRequest(CamelModel):
    enabled: bool


class MoveRequest(CamelModel):
    old_index: int
    new_index: int


class IdentityRequest(CamelModel):
    user_id: Optional[str] = None


class LikeResponse(CamelModel):
    track_id: str
    liked: bool


class FlagResponse(CamelModel):
    enabled: bool
