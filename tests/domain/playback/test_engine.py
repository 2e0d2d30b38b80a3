"""Tests for playback engines and the engine adapter."""

import asyncio

import pytest

from tunewave.core.exceptions import EngineUnavailableError
from tunewave.domain.library.models import VideoRef
from tunewave.domain.playback.engine import (
    DEFAULT_SIMULATED_DURATION,
    REMOTE,
    SIMULATED,
    EngineAdapter,
    RemoteEngine,
    SimulatedEngine,
)
from tunewave.domain.playback.events import EngineEventType, WidgetState

pytestmark = pytest.mark.anyio

VIDEO = VideoRef(video_id="vid00000001")


class Recorder:
    def __init__(self):
        self.events = []

    def __call__(self, event_type, error_code=None):
        self.events.append((event_type, error_code))

    def types(self):
        return [event_type for event_type, _ in self.events]


class TestSimulatedEngine:
    """Tests for the simulated backing."""

    async def test_ticks_to_end(self, make_track) -> None:
        emit = Recorder()
        engine = SimulatedEngine(emit)
        await engine.load(make_track("a", duration_ms=3000), None)
        await engine.play()

        for _ in range(2):
            await engine.tick()
        assert engine.current_time() == 2.0
        assert EngineEventType.ENDED not in emit.types()

        await engine.tick()
        assert engine.current_time() == 3.0
        assert emit.types() == [
            EngineEventType.READY,
            EngineEventType.PLAYING,
            EngineEventType.ENDED,
        ]

    async def test_unknown_duration_uses_default(self, make_track) -> None:
        engine = SimulatedEngine(Recorder())
        await engine.load(make_track("a", duration_ms=0), None)
        assert engine.duration() == DEFAULT_SIMULATED_DURATION

    async def test_paused_does_not_advance(self, make_track) -> None:
        engine = SimulatedEngine(Recorder())
        await engine.load(make_track("a"), None)
        await engine.tick()
        assert engine.current_time() == 0.0

    async def test_restart(self, make_track) -> None:
        emit = Recorder()
        engine = SimulatedEngine(emit)
        await engine.load(make_track("a"), None)
        await engine.play()
        await engine.seek(90)

        await engine.restart()

        assert engine.current_time() == 0.0
        assert engine.playing is True

    async def test_seek_clamped(self, make_track) -> None:
        engine = SimulatedEngine(Recorder())
        await engine.load(make_track("a", duration_ms=10000), None)
        await engine.seek(50)
        assert engine.current_time() == 10.0


class TestRemoteEngine:
    """Tests for the widget-backed engine."""

    async def test_buffers_until_ready(self, widget_factory, make_track) -> None:
        widget = widget_factory(ready=False)
        engine = RemoteEngine(widget)
        emit = Recorder()
        engine.bind(emit)

        await engine.set_volume(40)
        await engine.load(make_track("a"), VIDEO)
        await engine.play()
        assert widget.calls == []

        widget.become_ready()
        await engine.wait_ready(1.0)

        assert widget.calls == [
            ("set_volume", 40),
            ("load_video", "vid00000001"),
            ("play",),
        ]
        assert emit.types()[-1] == EngineEventType.READY

    async def test_pause_cancels_buffered_play(self, widget_factory, make_track) -> None:
        widget = widget_factory(ready=False)
        engine = RemoteEngine(widget)
        await engine.load(make_track("a"), VIDEO)
        await engine.play()
        await engine.pause()

        widget.become_ready()
        await engine.wait_ready(1.0)

        assert widget.names() == ["load_video"]

    async def test_wait_ready_times_out(self, widget_factory) -> None:
        engine = RemoteEngine(widget_factory(ready=False))
        with pytest.raises(asyncio.TimeoutError):
            await engine.wait_ready(0.01)

    async def test_translates_widget_states(self, widget_factory) -> None:
        widget = widget_factory()
        engine = RemoteEngine(widget)
        emit = Recorder()
        engine.bind(emit)

        widget.emit_state(WidgetState.BUFFERING)
        widget.emit_state(WidgetState.PLAYING)
        widget.emit_state(WidgetState.CUED)
        widget.emit_state(WidgetState.PAUSED)
        widget.emit_state(WidgetState.ENDED)
        widget.emit_error(101)

        assert emit.events == [
            (EngineEventType.PLAYING, None),
            (EngineEventType.PAUSED, None),
            (EngineEventType.ENDED, None),
            (EngineEventType.ERROR, 101),
        ]

    async def test_detached_engine_is_silent(self, widget_factory) -> None:
        widget = widget_factory()
        engine = RemoteEngine(widget)
        emit = Recorder()
        engine.bind(emit)
        engine.reset()

        widget.emit_state(WidgetState.PLAYING)

        assert emit.events == []

    async def test_requires_video(self, widget_factory, make_track) -> None:
        engine = RemoteEngine(widget_factory())
        with pytest.raises(EngineUnavailableError):
            await engine.load(make_track("a"), None)

    async def test_restart_reloads_video(self, widget_factory, make_track) -> None:
        widget = widget_factory()
        engine = RemoteEngine(widget)
        await engine.load(make_track("a"), VIDEO)
        widget.calls.clear()

        await engine.restart()

        assert widget.calls == [("load_video", "vid00000001"), ("play",)]

    async def test_tick_polls_widget(self, widget_factory, make_track) -> None:
        widget = widget_factory()
        engine = RemoteEngine(widget)
        await engine.load(make_track("a", duration_ms=0), VIDEO)
        widget.position = 12.5
        widget.total = 201.0

        await engine.tick()

        assert engine.current_time() == 12.5
        assert engine.duration() == 201.0


class TestEngineAdapter:
    """Tests for backing selection."""

    async def test_remote_when_ready(self, widget_factory, make_track) -> None:
        events = []
        adapter = EngineAdapter(widget_factory(), ready_timeout=0.5, sink=events.append)

        backing = await adapter.load(make_track("a"), VIDEO, offline=False, token=3)
        await adapter.play()

        assert backing == REMOTE
        assert adapter.backing == REMOTE
        assert events[-1].type == EngineEventType.PLAYING
        assert events[-1].token == 3

    async def test_simulated_without_widget(self, make_track) -> None:
        events = []
        adapter = EngineAdapter(sink=events.append)

        backing = await adapter.load(make_track("a"), VIDEO, offline=False, token=1)

        assert backing == SIMULATED
        assert [(e.type, e.token) for e in events] == [(EngineEventType.READY, 1)]

    async def test_simulated_without_video(self, widget_factory, make_track) -> None:
        widget = widget_factory()
        adapter = EngineAdapter(widget, ready_timeout=0.5)
        assert await adapter.load(make_track("a"), None, offline=False, token=1) == SIMULATED
        assert "load_video" not in widget.names()

    async def test_simulated_when_offline(self, widget_factory, make_track) -> None:
        adapter = EngineAdapter(widget_factory(), ready_timeout=0.5)
        assert await adapter.load(make_track("a"), VIDEO, offline=True, token=1) == SIMULATED

    async def test_simulated_after_ready_timeout(self, widget_factory, make_track) -> None:
        widget = widget_factory(ready=False)
        adapter = EngineAdapter(widget, ready_timeout=0.01)

        backing = await adapter.load(make_track("a"), VIDEO, offline=False, token=1)

        assert backing == SIMULATED
        # Buffered commands were dropped with the abandoned load
        widget.become_ready()
        await adapter.remote.wait_ready(1.0)
        assert "load_video" not in widget.names()

    async def test_superseded_load_returns_none(self, widget_factory, make_track) -> None:
        adapter = EngineAdapter(widget_factory(ready=False), ready_timeout=0.2)

        first = asyncio.create_task(adapter.load(make_track("a"), VIDEO, offline=False, token=1))
        await asyncio.sleep(0)
        second = await adapter.load(make_track("b"), None, offline=False, token=2)

        assert await first is None
        assert second == SIMULATED
        assert adapter.backing == SIMULATED

    async def test_switching_backing_stops_previous(self, widget_factory, make_track) -> None:
        widget = widget_factory()
        adapter = EngineAdapter(widget, ready_timeout=0.5)
        await adapter.load(make_track("a"), VIDEO, offline=False, token=1)

        await adapter.load(make_track("b"), VIDEO, offline=True, token=2)

        assert adapter.backing == SIMULATED
        assert widget.names()[-1] == "stop"

    async def test_failed_initialize_disables_remote(self, widget_factory) -> None:
        class BrokenWidget(widget_factory):
            async def initialize(self) -> None:
                raise EngineUnavailableError("mpv missing")

        adapter = EngineAdapter(BrokenWidget(ready=False))
        await adapter.start()
        await adapter._init_task

        assert adapter.remote_available is False

    async def test_volume_reaches_idle_widget(self, widget_factory) -> None:
        widget = widget_factory()
        adapter = EngineAdapter(widget)
        await adapter.set_volume(55)
        assert widget.calls == [("set_volume", 55)]

    async def test_shutdown_closes_widget(self, widget_factory) -> None:
        widget = widget_factory()
        adapter = EngineAdapter(widget)
        await adapter.shutdown()
        assert widget.closed is True
        assert widget.listener is None
