"""
Durable liked songs and recently played history.

Wraps a PersistenceAdapter with the two keys the session needs and
re-scopes it when the signed-in identity changes.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from tunewave.core.storage import PersistenceAdapter, scope_for_identity

from ..library.models import Track
from .session import RECENTLY_PLAYED_LIMIT

LIKED_SONGS_KEY = "liked_songs"
RECENTLY_PLAYED_KEY = "recently_played"


def _parse_tracks(value: Any, key: str) -> List[Track]:
    if not isinstance(value, list):
        if value is not None:
            logger.warning(f"Ignoring malformed {key}: expected a list")
        return []

    tracks = []
    for item in value:
        try:
            tracks.append(Track.from_dict(item))
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning(f"Skipping malformed entry in {key}: {item!r}")
    return tracks


class PreferenceStore:
    def __init__(self, adapter: PersistenceAdapter):
        self.adapter = adapter

    @property
    def scope(self) -> str:
        return self.adapter.scope

    def set_identity(self, user_id: Optional[str]) -> None:
        self.adapter = self.adapter.with_scope(scope_for_identity(user_id))
        logger.info(f"Preferences scoped to {self.adapter.scope}")

    def load_liked(self) -> Dict[str, Track]:
        tracks = _parse_tracks(self.adapter.load(LIKED_SONGS_KEY), LIKED_SONGS_KEY)
        return {track.id: track for track in tracks}

    def save_liked(self, liked: Dict[str, Track]) -> bool:
        saved = self.adapter.save(
            LIKED_SONGS_KEY, [track.to_dict() for track in liked.values()]
        )
        if not saved:
            logger.warning("Liked songs not persisted; keeping in-memory copy")
        return saved

    def load_recent(self) -> List[Track]:
        tracks = _parse_tracks(self.adapter.load(RECENTLY_PLAYED_KEY), RECENTLY_PLAYED_KEY)
        unique: List[Track] = []
        for track in tracks:
            if all(t.id != track.id for t in unique):
                unique.append(track)
        return unique[:RECENTLY_PLAYED_LIMIT]

    def save_recent(self, recent: List[Track]) -> bool:
        saved = self.adapter.save(RECENTLY_PLAYED_KEY, [track.to_dict() for track in recent])
        if not saved:
            logger.warning("Recently played not persisted; keeping in-memory copy")
        return saved
