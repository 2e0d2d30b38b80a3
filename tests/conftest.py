"""Shared fixtures and fakes for tunewave tests."""

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from tunewave.core.config import Config
from tunewave.core.storage import MemoryStore
from tunewave.domain.library.models import AlbumRef, Artist, Track, VideoRef
from tunewave.domain.playback.coordinator import SessionCoordinator
from tunewave.domain.playback.engine import EngineAdapter
from tunewave.domain.playback.events import WidgetState
from tunewave.domain.playback.preferences import PreferenceStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _make_track(
    track_id: str,
    title: Optional[str] = None,
    artist_id: str = "artist-1",
    duration_ms: int = 180000,
) -> Track:
    return Track(
        id=track_id,
        title=title or f"Song {track_id}",
        artists=(Artist(id=artist_id, name=f"Artist {artist_id}"),),
        album=AlbumRef(id="album-1", name="Album"),
        duration_ms=duration_ms,
        uri=f"spotify:track:{track_id}",
    )


class FakeLookup:
    """LookupService double with canned results and optional gates."""

    def __init__(self):
        self.videos: Dict[str, Optional[VideoRef]] = {}
        self.default_video: Optional[VideoRef] = None
        self.top_tracks: List[Track] = []
        self.recommendations: List[Track] = []
        self.new_releases: List[Track] = []
        self.fail_related = False
        self.gates: Dict[str, asyncio.Event] = {}
        self.queries: List[str] = []
        self.catalog: Dict[str, Track] = {}

    async def search_video(self, query: str) -> Optional[VideoRef]:
        self.queries.append(query)
        for key, gate in self.gates.items():
            if key in query:
                await gate.wait()
        for key, video in self.videos.items():
            if key in query:
                return video
        return self.default_video

    async def get_artist_top_tracks(self, artist_id: str) -> List[Track]:
        if self.fail_related:
            raise RuntimeError("catalog unavailable")
        return list(self.top_tracks)

    async def get_recommendations(self, seed_track_ids: Sequence[str]) -> List[Track]:
        if self.fail_related:
            raise RuntimeError("catalog unavailable")
        return list(self.recommendations)

    async def get_new_releases(self) -> List[Track]:
        return list(self.new_releases)

    async def search_tracks(self, query: str) -> List[Track]:
        return [t for t in self.catalog.values() if query.lower() in t.title.lower()]

    async def get_track(self, track_id: str) -> Optional[Track]:
        return self.catalog.get(track_id)


class FakeWidget:
    """EmbedWidget double that records commands.

    With auto_play, play()/pause() report the matching state immediately.
    """

    def __init__(self, ready: bool = True, auto_play: bool = True):
        self.ready = ready
        self.auto_play = auto_play
        self.listener = None
        self.calls: List[tuple] = []
        self.position = 0.0
        self.total = 0.0
        self.closed = False

    def set_listener(self, listener) -> None:
        self.listener = listener

    async def initialize(self) -> None:
        self.calls.append(("initialize",))

    def become_ready(self) -> None:
        self.ready = True
        self.listener.on_ready()

    def emit_state(self, state: WidgetState) -> None:
        self.listener.on_state_change(state)

    def emit_error(self, code: int = 150) -> None:
        self.listener.on_error(code)

    async def load_video(self, video_id: str) -> None:
        self.calls.append(("load_video", video_id))

    async def play(self) -> None:
        self.calls.append(("play",))
        if self.auto_play:
            self.emit_state(WidgetState.PLAYING)

    async def pause(self) -> None:
        self.calls.append(("pause",))
        if self.auto_play:
            self.emit_state(WidgetState.PAUSED)

    async def seek(self, seconds: float) -> None:
        self.calls.append(("seek", seconds))
        self.position = seconds

    async def set_volume(self, volume: int) -> None:
        self.calls.append(("set_volume", volume))

    async def get_current_time(self) -> float:
        return self.position

    async def get_duration(self) -> float:
        return self.total

    async def stop(self) -> None:
        self.calls.append(("stop",))

    async def close(self) -> None:
        self.closed = True

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def make_track():
    return _make_track


@pytest.fixture
def widget_factory():
    return FakeWidget


@pytest.fixture
def config() -> Config:
    cfg = Config()
    # Tests drive progress through coordinator.tick()
    cfg.player.tick_interval = 3600.0
    cfg.player.ready_timeout = 0.5
    cfg.lookup.timeout = 1.0
    return cfg


@pytest.fixture
def lookup() -> FakeLookup:
    return FakeLookup()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def widget() -> FakeWidget:
    return FakeWidget()


def _build_coordinator(config, lookup, store, widget=None) -> SessionCoordinator:
    adapter = EngineAdapter(widget, ready_timeout=config.player.ready_timeout)
    return SessionCoordinator(config, lookup, PreferenceStore(store), adapter)


@pytest.fixture
def coordinator_factory(config, lookup, store):
    """Build (but do not start) a coordinator, optionally with a widget."""

    def build(widget=None) -> SessionCoordinator:
        return _build_coordinator(config, lookup, store, widget)

    return build


@pytest.fixture
async def coordinator(config, lookup, store):
    """Coordinator without a remote widget (always simulated)."""
    session = _build_coordinator(config, lookup, store)
    await session.start()
    yield session
    await session.shutdown()


@pytest.fixture
async def remote_coordinator(config, lookup, store, widget):
    """Coordinator with a ready FakeWidget; lookups find a video by default."""
    lookup.default_video = VideoRef(video_id="vid00000001", title="Official Audio")
    session = _build_coordinator(config, lookup, store, widget)
    await session.start()
    yield session
    await session.shutdown()
