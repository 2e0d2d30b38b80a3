"""
Playback session state.

A single PlaybackSession is owned by the SessionCoordinator and mutated only
through its operations; everything else reads ``snapshot()``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..library.models import Track, VideoRef

RECENTLY_PLAYED_LIMIT = 10

DEFAULT_VOLUME = 70


class PlayState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"


@dataclass
class PlaybackSession:
    current_track: Optional[Track] = None
    current_video: Optional[VideoRef] = None
    play_state: PlayState = PlayState.IDLE
    progress_seconds: float = 0.0
    duration_seconds: float = 0.0
    queue: List[Track] = field(default_factory=list)
    related_lookahead: List[Track] = field(default_factory=list)
    recently_played: List[Track] = field(default_factory=list)
    liked_songs: Dict[str, Track] = field(default_factory=dict)
    shuffled: bool = False
    repeated: bool = False
    continuous_playback: bool = True
    offline_mode: bool = False
    error_count: int = 0
    volume: int = DEFAULT_VOLUME
    previous_volume: Optional[int] = None
    backing: Optional[str] = None  # 'remote' or 'simulated'

    @property
    def is_playing(self) -> bool:
        return self.play_state == PlayState.PLAYING

    def reset_position(self, duration_seconds: float = 0.0) -> None:
        self.progress_seconds = 0.0
        self.duration_seconds = max(0.0, duration_seconds)

    def set_progress(self, seconds: float) -> None:
        """Set progress, clamped to [0, duration] when the duration is known."""
        seconds = max(0.0, seconds)
        if self.duration_seconds > 0:
            seconds = min(seconds, self.duration_seconds)
        self.progress_seconds = seconds

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view for API consumers."""
        return {
            "current_track": self.current_track.to_dict() if self.current_track else None,
            "current_video": self.current_video._asdict() if self.current_video else None,
            "play_state": self.play_state.value,
            "progress_seconds": self.progress_seconds,
            "duration_seconds": self.duration_seconds,
            "queue": [track.to_dict() for track in self.queue],
            "related_lookahead": [track.to_dict() for track in self.related_lookahead],
            "recently_played": [track.to_dict() for track in self.recently_played],
            "liked_track_ids": list(self.liked_songs),
            "shuffled": self.shuffled,
            "repeated": self.repeated,
            "continuous_playback": self.continuous_playback,
            "offline_mode": self.offline_mode,
            "error_count": self.error_count,
            "volume": self.volume,
            "backing": self.backing,
        }


def push_recently_played(recent: List[Track], track: Track) -> List[Track]:
    """Return recent with track moved to the front, unique by id, bounded."""
    deduped = [t for t in recent if t.id != track.id]
    return [track, *deduped][:RECENTLY_PLAYED_LIMIT]
