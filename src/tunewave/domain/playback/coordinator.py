"""
Session coordinator: the single owner of the playback session.

All user intents (play, skip, queue edits, volume) are coroutine methods on
SessionCoordinator. Engine lifecycle events are posted to a bounded queue
and applied by one control-loop task, so session state is only mutated on
the event loop and never from nested engine callbacks.

Every play attempt is issued a play token. Video lookups, lookahead
refreshes and engine events carry the token they were started for and are
dropped once a newer play has begun.
"""

import asyncio
import random
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger

from tunewave.core.config import Config
from tunewave.core.exceptions import EngineUnavailableError

from ..library.lookup import LookupService
from ..library.models import Track, VideoRef
from .engine import REMOTE, EngineAdapter
from .events import EngineEvent, EngineEventType
from .lookahead import fallback_related, fetch_related
from .preferences import PreferenceStore
from .session import DEFAULT_VOLUME, PlaybackSession, PlayState, push_recently_played

# Engine errors tolerated before the session degrades to offline mode
MAX_ENGINE_ERRORS = 3

# play_previous() restarts the current track past this point
RESTART_THRESHOLD_SECONDS = 5.0

VOLUME_STEP = 10


def clamp_volume(volume: float) -> int:
    return int(max(0, min(100, round(volume))))


class SessionCoordinator:
    """Owns the PlaybackSession and every transition applied to it."""

    def __init__(
        self,
        config: Config,
        lookup: LookupService,
        preferences: PreferenceStore,
        adapter: EngineAdapter,
    ):
        self.config = config
        self.lookup = lookup
        self.preferences = preferences
        self.adapter = adapter
        self.session = PlaybackSession(
            volume=clamp_volume(config.player.volume),
            continuous_playback=config.player.continuous_playback,
        )
        self.new_releases: List[Track] = []

        self._events: "asyncio.Queue[EngineEvent]" = asyncio.Queue(
            maxsize=config.player.event_queue_size
        )
        self._play_token = 0
        self._timer: Optional[asyncio.Task] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._failed_advances = 0
        self._failed_ids: Set[str] = set()
        # Serializes preference writes and identity switches
        self._prefs_lock = asyncio.Lock()

        adapter.set_sink(self._post_event)

    @property
    def play_token(self) -> int:
        return self._play_token

    # ==================== LIFECYCLE ====================

    async def start(self) -> None:
        """Load persisted preferences, start the control loop and the remote player."""
        if self._loop_task is not None:
            return
        self.session.liked_songs, self.session.recently_played = await asyncio.to_thread(
            self._load_preferences
        )
        self._loop_task = asyncio.get_running_loop().create_task(self._run())
        await self.adapter.start()
        logger.info(
            f"Session started ({len(self.session.liked_songs)} liked, "
            f"{len(self.session.recently_played)} recent)"
        )

    async def shutdown(self) -> None:
        self._stop_timer()
        pending = [task for task in self._tasks if not task.done()]
        if self._loop_task is not None:
            pending.append(self._loop_task)
            self._loop_task = None
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self.adapter.shutdown()
        logger.info("Session stopped")

    async def settle(self, background: bool = True) -> None:
        """Wait until posted events have been processed.

        With background=True, also wait for in-flight lookahead refreshes.
        """
        while True:
            await self._events.join()
            if not background:
                return
            pending = [task for task in self._tasks if not task.done()]
            if pending:
                await asyncio.wait(pending)
                continue
            # Let callbacks scheduled by the last event run
            await asyncio.sleep(0)
            if self._events.empty() and all(task.done() for task in self._tasks):
                return

    def snapshot(self) -> Dict[str, Any]:
        return self.session.snapshot()

    # ==================== PLAYBACK ====================

    async def play(self, track: Optional[Track]) -> None:
        """Make track the current track and start playing it.

        The video is looked up unless the session is offline; without one the
        track is simulated. The lookahead refresh runs in the background.
        """
        if track is None or not track.id:
            logger.debug("Ignoring play request without a track id")
            return

        self._play_token += 1
        token = self._play_token
        self._stop_timer()
        await self._engine("stop", self.adapter.stop())

        session = self.session
        session.current_track = track
        session.current_video = None
        session.play_state = PlayState.LOADING
        session.backing = None
        session.reset_position(track.duration_seconds)
        session.recently_played = push_recently_played(session.recently_played, track)
        await self._save_recent()
        if token != self._play_token:
            return
        logger.info(f"Loading '{track.title}' by {track.artist_names or 'unknown artist'}")

        self._spawn(self._refresh_lookahead(track, token))

        video = None
        if session.offline_mode:
            logger.info("Offline mode, skipping video lookup")
        else:
            video = await self._find_video(track)
            if token != self._play_token:
                logger.debug(f"Discarding stale video lookup for '{track.title}'")
                return

        backing = await self.adapter.load(track, video, session.offline_mode, token)
        if backing is None or token != self._play_token:
            logger.debug(f"Load of '{track.title}' superseded")
            return

        session.backing = backing
        session.current_video = video if backing == REMOTE else None
        duration = self.adapter.duration()
        if duration > 0:
            session.duration_seconds = duration

        await self._engine("volume", self.adapter.set_volume(session.volume))
        await self._engine("play", self.adapter.play())

    async def pause(self) -> None:
        if self.session.play_state != PlayState.PLAYING:
            logger.debug(f"Pause ignored in state {self.session.play_state.value}")
            return
        await self._engine("pause", self.adapter.pause())

    async def resume(self) -> None:
        state = self.session.play_state
        if state == PlayState.PAUSED:
            await self._engine("play", self.adapter.play())
        elif state in (PlayState.IDLE, PlayState.ENDED, PlayState.ERROR):
            if self.session.current_track is not None:
                await self.play(self.session.current_track)
        else:
            logger.debug(f"Resume ignored in state {state.value}")

    async def toggle_play(self) -> None:
        if self.session.play_state == PlayState.PLAYING:
            await self.pause()
        else:
            await self.resume()

    async def play_next(self) -> None:
        """Skip to the next track (queue first, then lookahead), ignoring repeat."""
        next_track = self._next_candidate()
        if next_track is None:
            logger.debug("Nothing to skip to")
            return
        await self.play(next_track)

    async def play_previous(self) -> None:
        session = self.session
        if session.current_track is not None and session.progress_seconds > RESTART_THRESHOLD_SECONDS:
            logger.info(f"Restarting '{session.current_track.title}'")
            await self._restart_current()
        elif len(session.recently_played) >= 2:
            await self.play(session.recently_played[1])
        else:
            logger.debug("No previous track")

    async def seek(self, seconds: float) -> None:
        session = self.session
        if session.current_track is None:
            logger.debug("Seek ignored without a current track")
            return
        session.set_progress(seconds)
        await self._engine("seek", self.adapter.seek(session.progress_seconds))

    # ==================== VOLUME ====================

    async def set_volume(self, volume: float) -> None:
        self.session.volume = clamp_volume(volume)
        await self._engine("volume", self.adapter.set_volume(self.session.volume))

    async def toggle_mute(self) -> None:
        session = self.session
        if session.volume > 0:
            session.previous_volume = session.volume
            await self.set_volume(0)
        else:
            restored = session.previous_volume or DEFAULT_VOLUME
            session.previous_volume = None
            await self.set_volume(restored)

    async def volume_up(self) -> None:
        await self.set_volume(self.session.volume + VOLUME_STEP)

    async def volume_down(self) -> None:
        await self.set_volume(self.session.volume - VOLUME_STEP)

    # ==================== MODES ====================

    def toggle_shuffle(self) -> bool:
        """Toggle shuffle; enabling permutes the queue once. Disabling keeps the order."""
        session = self.session
        session.shuffled = not session.shuffled
        if session.shuffled:
            random.shuffle(session.queue)
        return session.shuffled

    def toggle_repeat(self) -> bool:
        self.session.repeated = not self.session.repeated
        return self.session.repeated

    def set_continuous_playback(self, enabled: bool) -> None:
        self.session.continuous_playback = enabled

    def set_offline_mode(self, enabled: bool) -> None:
        """Enter or leave offline mode; applies from the next play."""
        self.session.offline_mode = enabled
        if not enabled:
            self.session.error_count = 0
        logger.info(f"Offline mode {'enabled' if enabled else 'disabled'}")

    # ==================== QUEUE ====================

    def add_to_queue(self, track: Optional[Track]) -> None:
        if track is None or not track.id:
            logger.debug("Ignoring queue request without a track id")
            return
        self.session.queue.append(track)

    def add_tracks_to_queue(self, tracks: Iterable[Track]) -> None:
        for track in tracks:
            self.add_to_queue(track)

    def remove_from_queue(self, index: int) -> None:
        queue = self.session.queue
        if not 0 <= index < len(queue):
            logger.debug(f"Queue index {index} out of range")
            return
        del queue[index]

    def move_in_queue(self, old_index: int, new_index: int) -> None:
        queue = self.session.queue
        if not (0 <= old_index < len(queue) and 0 <= new_index < len(queue)):
            logger.debug(f"Queue move {old_index} -> {new_index} out of range")
            return
        queue.insert(new_index, queue.pop(old_index))

    def clear_queue(self) -> None:
        self.session.queue.clear()

    # ==================== LIKES / IDENTITY ====================

    async def toggle_like(self, track: Optional[Track]) -> bool:
        """Like or unlike track; returns whether it is now liked."""
        if track is None or not track.id:
            logger.debug("Ignoring like request without a track id")
            return False
        liked = self.session.liked_songs
        if track.id in liked:
            del liked[track.id]
            now_liked = False
        else:
            liked[track.id] = track
            now_liked = True
        await self._save_liked()
        return now_liked

    def is_liked(self, track_id: str) -> bool:
        return track_id in self.session.liked_songs

    def liked_tracks(self) -> List[Track]:
        return list(self.session.liked_songs.values())

    async def set_identity(self, user_id: Optional[str]) -> None:
        """Switch persistence to user_id's scope (None for the local scope) and reload."""
        async with self._prefs_lock:
            self.preferences.set_identity(user_id)
            liked, recent = await asyncio.to_thread(self._load_preferences)
            self.session.liked_songs = liked
            self.session.recently_played = recent

    def _load_preferences(self) -> Tuple[Dict[str, Track], List[Track]]:
        return self.preferences.load_liked(), self.preferences.load_recent()

    async def _save_recent(self) -> None:
        async with self._prefs_lock:
            recent = list(self.session.recently_played)
            await asyncio.to_thread(self.preferences.save_recent, recent)

    async def _save_liked(self) -> None:
        async with self._prefs_lock:
            liked = dict(self.session.liked_songs)
            await asyncio.to_thread(self.preferences.save_liked, liked)

    async def load_new_releases(self) -> List[Track]:
        try:
            releases = await asyncio.wait_for(
                self.lookup.get_new_releases(), self.config.lookup.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Timed out loading new releases")
            return self.new_releases
        except Exception as e:
            logger.warning(f"Failed to load new releases: {e}")
            return self.new_releases
        self.new_releases = list(releases)
        logger.info(f"Cached {len(self.new_releases)} new releases")
        return self.new_releases

    # ==================== PROGRESS ====================

    async def tick(self) -> None:
        """Advance progress tracking by one timer period."""
        session = self.session
        if session.play_state != PlayState.PLAYING:
            return
        if not await self._engine("poll", self.adapter.tick()):
            return
        duration = self.adapter.duration()
        if duration > 0:
            session.duration_seconds = duration
        session.set_progress(self.adapter.current_time())

    def _start_timer(self) -> None:
        self._stop_timer()
        self._timer = asyncio.get_running_loop().create_task(self._run_timer())

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _run_timer(self) -> None:
        interval = self.config.player.tick_interval
        while True:
            await asyncio.sleep(interval)
            await self.tick()

    # ==================== EVENTS ====================

    def _post_event(self, event: EngineEvent) -> None:
        try:
            self._events.put_nowait(event)
        except asyncio.QueueFull:
            logger.error(f"Engine event queue full, dropping {event.type.value}")

    async def _run(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self._handle_event(event)
            except Exception:
                logger.exception(f"Error handling engine event {event.type.value}")
            finally:
                self._events.task_done()

    async def _handle_event(self, event: EngineEvent) -> None:
        if event.token != self._play_token:
            logger.debug(f"Discarding stale {event.type.value} event (token {event.token})")
            return

        session = self.session
        if event.type == EngineEventType.READY:
            await self._engine("volume", self.adapter.set_volume(session.volume))

        elif event.type == EngineEventType.PLAYING:
            if session.play_state != PlayState.PLAYING:
                logger.info(f"Playing '{session.current_track.title}' ({session.backing})")
            session.play_state = PlayState.PLAYING
            session.error_count = 0
            self._failed_advances = 0
            self._failed_ids.clear()
            self._start_timer()

        elif event.type == EngineEventType.PAUSED:
            session.play_state = PlayState.PAUSED
            self._stop_timer()

        elif event.type == EngineEventType.ENDED:
            session.play_state = PlayState.ENDED
            self._stop_timer()
            if session.duration_seconds > 0:
                session.set_progress(session.duration_seconds)
            await self._advance()

        elif event.type == EngineEventType.ERROR:
            session.play_state = PlayState.ERROR
            self._stop_timer()
            session.error_count += 1
            logger.warning(
                f"Engine error {event.error_code} ({session.error_count} consecutive)"
            )
            if session.error_count > MAX_ENGINE_ERRORS and not session.offline_mode:
                logger.warning("Too many player errors, switching to offline mode")
                session.offline_mode = True
            if session.current_track is not None:
                self._failed_ids.add(session.current_track.id)
            await self._advance(failed=True)

    # ==================== ADVANCE ====================

    def _next_candidate(self) -> Optional[Track]:
        session = self.session
        if session.queue:
            return session.queue.pop(0)
        if session.continuous_playback:
            current_id = session.current_track.id if session.current_track else None
            for track in session.related_lookahead:
                if track.id != current_id and track.id not in self._failed_ids:
                    return track
        return None

    async def _advance(self, failed: bool = False) -> None:
        """Move on after the current track ended or failed.

        Repeat wins over the queue unless the track failed; the queue wins
        over the lookahead. Runs of failed tracks are capped.
        """
        session = self.session
        if failed:
            self._failed_advances += 1
            if self._failed_advances > self.config.player.max_auto_advance_failures:
                logger.error(
                    f"Giving up after {self._failed_advances - 1} consecutive failed tracks"
                )
                await self._go_idle()
                return
        elif session.repeated and session.current_track is not None:
            logger.info(f"Repeating '{session.current_track.title}'")
            await self._restart_current()
            return

        next_track = self._next_candidate()
        if next_track is None:
            await self._go_idle()
            return
        await self.play(next_track)

    async def _restart_current(self) -> None:
        if self.adapter.active is None:
            # The engine was stopped when the session went idle
            await self.play(self.session.current_track)
            return
        self.session.set_progress(0)
        if self.session.play_state in (PlayState.PLAYING, PlayState.PAUSED):
            await self._engine("seek", self.adapter.seek(0))
        else:
            await self._engine("restart", self.adapter.restart())

    async def _go_idle(self) -> None:
        self._stop_timer()
        await self._engine("stop", self.adapter.stop())
        self.session.play_state = PlayState.IDLE
        self.session.backing = None
        logger.info("Nothing left to play, session idle")

    # ==================== BACKGROUND WORK ====================

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _engine(self, operation: str, call: Awaitable[None]) -> bool:
        """Run an engine command; failures become an engine error event."""
        try:
            await call
        except (EngineUnavailableError, OSError) as e:
            logger.error(f"Player {operation} failed: {e}")
            self._post_event(EngineEvent(EngineEventType.ERROR, self._play_token))
            return False
        return True

    async def _find_video(self, track: Track) -> Optional[VideoRef]:
        artist = track.primary_artist
        query = " ".join(part for part in (track.title, artist.name if artist else "") if part)
        query = f"{query} official audio"
        try:
            video = await asyncio.wait_for(
                self.lookup.search_video(query), self.config.lookup.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Video lookup timed out for '{query}', simulating playback")
            return None
        except Exception as e:
            logger.warning(f"Video lookup failed for '{query}': {e}")
            return None

        if video is None:
            logger.info(f"No video for '{query}', simulating playback")
        return video

    async def _refresh_lookahead(self, track: Track, token: int) -> None:
        try:
            related = await fetch_related(self.lookup, track, self.config.lookup.timeout)
        except Exception as e:
            if token != self._play_token:
                return
            self.session.related_lookahead = fallback_related(
                self.new_releases, track, self.session.related_lookahead
            )
            logger.warning(
                f"Related tracks unavailable for '{track.title}' ({e!r}), "
                f"using {len(self.session.related_lookahead)} cached tracks"
            )
            return

        if token != self._play_token:
            logger.debug(f"Discarding stale related tracks for '{track.title}'")
            return
        self.session.related_lookahead = related
        logger.debug(f"{len(related)} related tracks queued after '{track.title}'")
