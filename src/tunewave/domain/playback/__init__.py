"""Playback domain - session coordination over remote and simulated engines.

This domain handles:
- The playback session state machine (SessionCoordinator)
- Remote (mpv) and simulated playback behind one engine contract
- Related-track lookahead for continuous playback
- Liked songs and recently played persistence
"""

from .coordinator import SessionCoordinator
from .engine import (
    EmbedWidget,
    EngineAdapter,
    PlaybackEngine,
    RemoteEngine,
    SimulatedEngine,
)
from .events import EngineEvent, EngineEventType, WidgetState
from .mpv_widget import MpvWidget
from .preferences import PreferenceStore
from .session import PlaybackSession, PlayState

__all__ = [
    "SessionCoordinator",
    "EmbedWidget",
    "EngineAdapter",
    "PlaybackEngine",
    "RemoteEngine",
    "SimulatedEngine",
    "EngineEvent",
    "EngineEventType",
    "WidgetState",
    "MpvWidget",
    "PreferenceStore",
    "PlaybackSession",
    "PlayState",
]
