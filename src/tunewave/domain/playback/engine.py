"""
Playback engine adapter: one contract over a remote widget or a simulator.

The remote backing wraps an EmbedWidget (an external player that becomes
ready on its own schedule). The simulated backing advances one second per
timer tick and synthesizes ``ended`` at the track's duration. Only
EngineAdapter.load() decides which backing plays a track.
"""

import asyncio
from typing import Callable, Optional, Protocol

from loguru import logger

from tunewave.core.exceptions import EngineUnavailableError

from ..library.models import Track, VideoRef
from .events import EngineEvent, EngineEventType, WidgetState

# Used when a track has no known duration
DEFAULT_SIMULATED_DURATION = 180.0

REMOTE = "remote"
SIMULATED = "simulated"

EmitFn = Callable[..., None]  # (event_type, error_code=None)
EventSink = Callable[[EngineEvent], None]


class PlaybackEngine(Protocol):
    """Backing-independent playback contract."""

    kind: str

    async def load(self, track: Track, video: Optional[VideoRef]) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def restart(self) -> None: ...

    async def seek(self, seconds: float) -> None: ...

    async def set_volume(self, volume: int) -> None: ...

    def current_time(self) -> float: ...

    def duration(self) -> float: ...

    async def tick(self) -> None: ...

    async def stop(self) -> None: ...


class WidgetListener(Protocol):
    def on_ready(self) -> None: ...

    def on_state_change(self, state: WidgetState) -> None: ...

    def on_error(self, code: int) -> None: ...


class EmbedWidget(Protocol):
    """An external player that initializes asynchronously.

    ``initialize()`` starts it; the widget later calls ``on_ready()`` on its
    listener. Commands are only valid once ready.
    """

    ready: bool

    def set_listener(self, listener: Optional[WidgetListener]) -> None: ...

    async def initialize(self) -> None: ...

    async def load_video(self, video_id: str) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek(self, seconds: float) -> None: ...

    async def set_volume(self, volume: int) -> None: ...

    async def get_current_time(self) -> float: ...

    async def get_duration(self) -> float: ...

    async def stop(self) -> None: ...

    async def close(self) -> None: ...


class SimulatedEngine:
    """Local stand-in for a player: a counter advanced by the session timer."""

    kind = SIMULATED

    def __init__(self, emit: EmitFn):
        self._emit = emit
        self.position = 0.0
        self.total = DEFAULT_SIMULATED_DURATION
        self.playing = False
        self.volume: Optional[int] = None

    async def load(self, track: Track, video: Optional[VideoRef]) -> None:
        self.position = 0.0
        self.total = track.duration_seconds or DEFAULT_SIMULATED_DURATION
        self.playing = False
        self._emit(EngineEventType.READY)

    async def play(self) -> None:
        if self.position >= self.total:
            self.position = 0.0
        self.playing = True
        self._emit(EngineEventType.PLAYING)

    async def pause(self) -> None:
        self.playing = False
        self._emit(EngineEventType.PAUSED)

    async def restart(self) -> None:
        self.position = 0.0
        await self.play()

    async def seek(self, seconds: float) -> None:
        self.position = min(max(0.0, seconds), self.total)

    async def set_volume(self, volume: int) -> None:
        self.volume = volume

    def current_time(self) -> float:
        return self.position

    def duration(self) -> float:
        return self.total

    async def tick(self) -> None:
        if not self.playing:
            return
        self.position = min(self.position + 1.0, self.total)
        if self.position >= self.total:
            self.playing = False
            self._emit(EngineEventType.ENDED)

    async def stop(self) -> None:
        self.playing = False


class RemoteEngine:
    """PlaybackEngine over an EmbedWidget.

    Commands issued before the widget is ready are buffered and flushed, in
    order volume, video, play, once it reports ready. Widget callbacks are
    translated to engine events; buffering and cued states are ignored.
    """

    kind = REMOTE

    _STATE_EVENTS = {
        WidgetState.PLAYING: EngineEventType.PLAYING,
        WidgetState.PAUSED: EngineEventType.PAUSED,
        WidgetState.ENDED: EngineEventType.ENDED,
    }

    def __init__(self, widget: EmbedWidget):
        self.widget = widget
        self._emit: Optional[EmitFn] = None
        self._ready = asyncio.Event()
        self._flush_task: Optional[asyncio.Task] = None
        self._pending_video: Optional[str] = None
        self._pending_play = False
        self._pending_volume: Optional[int] = None
        self._video_id: Optional[str] = None
        self._position = 0.0
        self._duration = 0.0
        widget.set_listener(self)
        if widget.ready:
            self._ready.set()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def bind(self, emit: Optional[EmitFn]) -> None:
        """Route subsequent widget events to emit (None detaches)."""
        self._emit = emit

    async def wait_ready(self, timeout: float) -> None:
        """Wait until ready and buffered commands are flushed.

        Raises:
            asyncio.TimeoutError: If the widget is not ready in time
        """
        await asyncio.wait_for(self._ready.wait(), timeout)

    async def load(self, track: Track, video: Optional[VideoRef]) -> None:
        if video is None:
            raise EngineUnavailableError("Remote playback requires a video")
        self._position = 0.0
        self._duration = track.duration_seconds
        self._video_id = video.video_id
        if self.ready:
            await self.widget.load_video(video.video_id)
        else:
            logger.debug(f"Widget not ready, buffering video {video.video_id}")
            self._pending_video = video.video_id
            self._pending_play = False

    async def play(self) -> None:
        if self.ready:
            await self.widget.play()
        else:
            self._pending_play = True

    async def pause(self) -> None:
        if self.ready:
            await self.widget.pause()
        else:
            self._pending_play = False

    async def restart(self) -> None:
        """Reload the current video from the start; the widget unloads it at end."""
        self._position = 0.0
        if not self.ready:
            self._pending_video = self._video_id
            self._pending_play = True
            return
        if self._video_id is not None:
            await self.widget.load_video(self._video_id)
        await self.widget.play()

    async def seek(self, seconds: float) -> None:
        if self.ready:
            await self.widget.seek(seconds)
        self._position = seconds

    async def set_volume(self, volume: int) -> None:
        if self.ready:
            await self.widget.set_volume(volume)
        else:
            self._pending_volume = volume

    def current_time(self) -> float:
        return self._position

    def duration(self) -> float:
        return self._duration

    async def tick(self) -> None:
        """Poll the widget for position (and duration once known)."""
        if not self.ready:
            return
        self._position = await self.widget.get_current_time()
        duration = await self.widget.get_duration()
        if duration > 0:
            self._duration = duration

    def reset(self) -> None:
        """Detach from the session and drop buffered commands."""
        self._emit = None
        self._pending_video = None
        self._pending_play = False

    async def stop(self) -> None:
        self.reset()
        if not self.ready:
            return
        try:
            await self.widget.stop()
        except (EngineUnavailableError, OSError) as e:
            logger.warning(f"Failed to stop remote player: {e}")

    # Widget callbacks

    def on_ready(self) -> None:
        if self.ready or self._flush_task is not None:
            return
        logger.info("Remote player ready")
        self._flush_task = asyncio.get_running_loop().create_task(self._flush())

    async def _flush(self) -> None:
        try:
            if self._pending_volume is not None:
                volume, self._pending_volume = self._pending_volume, None
                await self.widget.set_volume(volume)
            if self._pending_video is not None:
                video_id, self._pending_video = self._pending_video, None
                await self.widget.load_video(video_id)
            if self._pending_play:
                self._pending_play = False
                await self.widget.play()
        except (EngineUnavailableError, OSError) as e:
            logger.error(f"Failed to flush buffered player commands: {e}")
            self._ready.set()
            self._send(EngineEventType.ERROR)
            return
        finally:
            self._flush_task = None

        self._ready.set()
        self._send(EngineEventType.READY)

    def on_state_change(self, state: WidgetState) -> None:
        event_type = self._STATE_EVENTS.get(state)
        if event_type is None:
            logger.debug(f"Ignoring widget state {state.value}")
            return
        self._send(event_type)

    def on_error(self, code: int) -> None:
        logger.warning(f"Remote player error code {code}")
        self._send(EngineEventType.ERROR, code)

    def _send(self, event_type: EngineEventType, error_code: Optional[int] = None) -> None:
        if self._emit is not None:
            self._emit(event_type, error_code)


class EngineAdapter:
    """Chooses and drives the active backing.

    Events from the active backing are stamped with the play token given to
    ``load()`` and passed to the sink.
    """

    def __init__(
        self,
        widget: Optional[EmbedWidget] = None,
        ready_timeout: float = 5.0,
        sink: Optional[EventSink] = None,
    ):
        self.remote = RemoteEngine(widget) if widget is not None else None
        self.ready_timeout = ready_timeout
        self._sink = sink
        self._remote_failed = False
        self._init_task: Optional[asyncio.Task] = None
        self.active: Optional[PlaybackEngine] = None
        self._load_token = 0

    def set_sink(self, sink: Optional[EventSink]) -> None:
        self._sink = sink

    @property
    def backing(self) -> Optional[str]:
        return self.active.kind if self.active is not None else None

    @property
    def remote_available(self) -> bool:
        return self.remote is not None and not self._remote_failed

    async def start(self) -> None:
        """Begin remote widget initialization in the background."""
        if self.remote is None or self.remote.ready or self._init_task is not None:
            return
        self._init_task = asyncio.get_running_loop().create_task(self._initialize_widget())

    async def _initialize_widget(self) -> None:
        try:
            await self.remote.widget.initialize()
        except EngineUnavailableError as e:
            logger.warning(f"Remote player unavailable, using simulated playback: {e}")
            self._remote_failed = True

    def _emitter(self, token: int) -> EmitFn:
        def emit(event_type: EngineEventType, error_code: Optional[int] = None) -> None:
            if self._sink is not None:
                self._sink(EngineEvent(event_type, token, error_code))

        return emit

    async def load(
        self, track: Track, video: Optional[VideoRef], offline: bool, token: int
    ) -> Optional[str]:
        """Load track on the appropriate backing and return its kind.

        Remote is used only when a video exists, the session is online and
        the widget becomes ready within ``ready_timeout``. Returns None if a
        newer load superseded this one while it waited for the widget.
        """
        await self.stop()
        self._load_token = token
        emit = self._emitter(token)

        if video is not None and not offline and self.remote_available:
            try:
                self.remote.bind(emit)
                await self.remote.load(track, video)
                await self.remote.wait_ready(self.ready_timeout)
                if token != self._load_token:
                    return None
                self.active = self.remote
                logger.info(f"Playing '{track.title}' on remote player ({video.video_id})")
                return REMOTE
            except asyncio.TimeoutError:
                if token != self._load_token:
                    return None
                logger.warning(
                    f"Remote player not ready after {self.ready_timeout}s, simulating playback"
                )
                await self.remote.stop()
            except (EngineUnavailableError, OSError) as e:
                if token != self._load_token:
                    return None
                logger.warning(f"Remote load failed, simulating playback: {e}")
                await self.remote.stop()

        engine = SimulatedEngine(emit)
        await engine.load(track, video)
        self.active = engine
        logger.info(f"Simulating playback of '{track.title}' ({engine.total:.0f}s)")
        return SIMULATED

    async def play(self) -> None:
        if self.active is not None:
            await self.active.play()

    async def pause(self) -> None:
        if self.active is not None:
            await self.active.pause()

    async def restart(self) -> None:
        if self.active is not None:
            await self.active.restart()

    async def seek(self, seconds: float) -> None:
        if self.active is not None:
            await self.active.seek(seconds)

    async def set_volume(self, volume: int) -> None:
        if self.active is not None:
            await self.active.set_volume(volume)
        elif self.remote is not None:
            await self.remote.set_volume(volume)

    async def tick(self) -> None:
        if self.active is not None:
            await self.active.tick()

    def current_time(self) -> float:
        return self.active.current_time() if self.active is not None else 0.0

    def duration(self) -> float:
        return self.active.duration() if self.active is not None else 0.0

    async def stop(self) -> None:
        if self.active is not None:
            await self.active.stop()
            self.active = None
        elif self.remote is not None:
            # Drop commands buffered for a load that never became active
            self.remote.reset()

    async def shutdown(self) -> None:
        await self.stop()
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        if self.remote is not None:
            self.remote.widget.set_listener(None)
            await self.remote.widget.close()
