"""
MPV remote player widget over JSON IPC.

MPV runs as a child process in idle mode with an IPC socket. Videos are
played by YouTube watch URL (mpv resolves the stream through yt-dlp).
Property changes and file events arriving on the socket are translated to
widget callbacks for the RemoteEngine.
"""

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from tunewave.core.config import PlayerConfig
from tunewave.core.exceptions import EngineUnavailableError

from .engine import WidgetListener
from .events import WidgetState

# Seconds to wait for a reply to a single IPC command
COMMAND_TIMEOUT = 2.0

# Observer id for the "pause" property
PAUSE_OBSERVER = 1

# Error codes reported to the listener, modelled on embed player codes
ERROR_UNAVAILABLE = 100
ERROR_PLAYBACK = 5


class MpvWidget:
    """EmbedWidget backed by an mpv process."""

    def __init__(
        self,
        mpv_path: str = "mpv",
        socket_path: Optional[str] = None,
        volume: int = 70,
        startup_timeout: float = 5.0,
    ):
        self.mpv_path = mpv_path
        self.socket_path = socket_path or str(
            Path(tempfile.gettempdir()) / f"tunewave-mpv-{os.getpid()}"
        )
        self.volume = volume
        self.startup_timeout = startup_timeout
        self.ready = False

        self._listener: Optional[WidgetListener] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._pending: Dict[int, asyncio.Future] = {}
        self._next_request_id = 0
        self._paused = True
        self._loaded = False

    @classmethod
    def from_config(cls, player: PlayerConfig) -> "MpvWidget":
        return cls(
            mpv_path=player.mpv_path,
            socket_path=player.mpv_socket_path,
            volume=player.volume,
            startup_timeout=player.ready_timeout,
        )

    def set_listener(self, listener: Optional[WidgetListener]) -> None:
        self._listener = listener

    async def initialize(self) -> None:
        """Start mpv, connect to its socket and report readiness.

        Raises:
            EngineUnavailableError: If mpv is missing or never opens its socket
        """
        if shutil.which(self.mpv_path) is None:
            raise EngineUnavailableError(f"mpv executable not found: {self.mpv_path}")

        if os.path.exists(self.socket_path):
            logger.debug(f"Removing existing socket: {self.socket_path}")
            os.unlink(self.socket_path)

        cmd = [
            self.mpv_path,
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={self.socket_path}",
            f"--volume={self.volume}",
            "--load-scripts=no",
        ]
        logger.info(f"Starting MPV player with socket: {self.socket_path}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise EngineUnavailableError(f"Failed to start mpv: {e}") from e

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout
        while not os.path.exists(self.socket_path):
            if self._process.returncode is not None:
                raise EngineUnavailableError(
                    f"mpv exited during startup (code {self._process.returncode})"
                )
            if loop.time() > deadline:
                await self.close()
                raise EngineUnavailableError(
                    f"MPV socket creation timeout after {self.startup_timeout}s"
                )
            await asyncio.sleep(0.1)

        try:
            self._reader, self._writer = await asyncio.open_unix_connection(self.socket_path)
        except OSError as e:
            await self.close()
            raise EngineUnavailableError(f"Could not connect to mpv socket: {e}") from e

        self._read_task = loop.create_task(self._read_loop())
        await self._command("observe_property", PAUSE_OBSERVER, "pause")

        self.ready = True
        logger.info("MPV started successfully")
        if self._listener is not None:
            self._listener.on_ready()

    async def _request(self, *args: Any) -> Dict[str, Any]:
        if self._writer is None:
            raise EngineUnavailableError("mpv is not connected")

        self._next_request_id += 1
        request_id = self._next_request_id
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        payload = json.dumps({"command": list(args), "request_id": request_id}) + "\n"
        try:
            self._writer.write(payload.encode("utf-8"))
            await self._writer.drain()
            return await asyncio.wait_for(future, COMMAND_TIMEOUT)
        except asyncio.TimeoutError as e:
            raise EngineUnavailableError(f"mpv did not answer '{args[0]}'") from e
        finally:
            self._pending.pop(request_id, None)

    async def _command(self, *args: Any) -> Any:
        response = await self._request(*args)
        if response.get("error") != "success":
            raise EngineUnavailableError(f"mpv '{args[0]}' failed: {response.get('error')}")
        return response.get("data")

    async def _get_property(self, name: str) -> Any:
        response = await self._request("get_property", name)
        # Playback properties are unavailable while idle
        if response.get("error") != "success":
            return None
        return response.get("data")

    async def _read_loop(self) -> None:
        try:
            while True:
                line = await self._reader.readline()
                if not line:
                    break
                try:
                    message = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug(f"Ignoring malformed mpv message: {line!r}")
                    continue
                self._handle_message(message)
        finally:
            self.ready = False
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(EngineUnavailableError("mpv connection closed"))
            logger.debug("MPV connection closed")

    def _handle_message(self, message: Dict[str, Any]) -> None:
        """Resolve a command reply or translate an mpv event."""
        if "event" not in message:
            future = self._pending.get(message.get("request_id"))
            if future is not None and not future.done():
                future.set_result(message)
            return

        event = message["event"]
        if event == "property-change" and message.get("name") == "pause":
            self._paused = bool(message.get("data"))
            if self._loaded:
                self._notify_state(WidgetState.PAUSED if self._paused else WidgetState.PLAYING)
        elif event == "start-file":
            self._notify_state(WidgetState.BUFFERING)
        elif event == "file-loaded":
            self._notify_state(WidgetState.CUED)
        elif event == "playback-restart":
            if self._loaded and not self._paused:
                self._notify_state(WidgetState.PLAYING)
        elif event == "end-file":
            reason = message.get("reason")
            if reason == "eof":
                self._loaded = False
                self._notify_state(WidgetState.ENDED)
            elif reason == "error":
                self._loaded = False
                file_error = message.get("file_error", "")
                logger.warning(f"mpv failed to play file: {file_error}")
                code = ERROR_UNAVAILABLE if "loading failed" in file_error else ERROR_PLAYBACK
                if self._listener is not None:
                    self._listener.on_error(code)

    def _notify_state(self, state: WidgetState) -> None:
        if self._listener is not None:
            self._listener.on_state_change(state)

    async def load_video(self, video_id: str) -> None:
        url = f"https://www.youtube.com/watch?v={video_id}"
        # Load paused; the engine starts playback explicitly
        await self._command("set_property", "pause", True)
        self._loaded = True
        await self._command("loadfile", url, "replace")
        logger.debug(f"Loaded {url}")

    async def play(self) -> None:
        await self._command("set_property", "pause", False)

    async def pause(self) -> None:
        await self._command("set_property", "pause", True)

    async def seek(self, seconds: float) -> None:
        await self._command("seek", max(0.0, seconds), "absolute")

    async def set_volume(self, volume: int) -> None:
        await self._command("set_property", "volume", max(0, min(100, volume)))

    async def get_current_time(self) -> float:
        position = await self._get_property("time-pos")
        return float(position) if position is not None else 0.0

    async def get_duration(self) -> float:
        duration = await self._get_property("duration")
        return float(duration) if duration is not None else 0.0

    async def stop(self) -> None:
        self._loaded = False
        await self._command("stop")

    async def close(self) -> None:
        """Stop mpv and clean up the socket."""
        self.ready = False
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        if self._read_task is not None:
            self._read_task.cancel()
            self._read_task = None

        if self._process is not None and self._process.returncode is None:
            self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), 2.0)
            except asyncio.TimeoutError:
                self._process.kill()
        self._process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass
