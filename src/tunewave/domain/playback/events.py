"""Engine lifecycle events and remote widget states."""

from enum import Enum
from typing import NamedTuple, Optional


class EngineEventType(str, Enum):
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"


class WidgetState(str, Enum):
    """States reported by an embedded remote player."""

    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    BUFFERING = "buffering"
    CUED = "cued"


class EngineEvent(NamedTuple):
    """A lifecycle event tagged with the play token it belongs to."""

    type: EngineEventType
    token: int
    error_code: Optional[int] = None
