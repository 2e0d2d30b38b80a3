"""
Music library domain models.

Contains data structures for catalog tracks and the videos they resolve to.
"""

from typing import Any, Dict, NamedTuple, Optional, Tuple


class Artist(NamedTuple):
    """A credited artist on a track."""

    id: Optional[str]
    name: str


class AlbumRef(NamedTuple):
    """Reference to the album a track belongs to."""

    id: Optional[str]
    name: str
    image_url: Optional[str] = None


class Track(NamedTuple):
    """Represents a catalog track.

    Immutable once fetched. Identifiers are opaque strings scoped to the
    catalog that produced them (Spotify track IDs in practice).
    """

    id: str
    title: str
    artists: Tuple[Artist, ...] = ()
    album: Optional[AlbumRef] = None
    duration_ms: int = 0
    uri: Optional[str] = None

    @property
    def primary_artist(self) -> Optional[Artist]:
        return self.artists[0] if self.artists else None

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict (for persistence and the web API)."""
        return {
            "id": self.id,
            "title": self.title,
            "artists": [{"id": a.id, "name": a.name} for a in self.artists],
            "album": (
                {
                    "id": self.album.id,
                    "name": self.album.name,
                    "image_url": self.album.image_url,
                }
                if self.album
                else None
            ),
            "duration_ms": self.duration_ms,
            "uri": self.uri,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        """Inverse of to_dict()."""
        album_data = data.get("album")
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            artists=tuple(
                Artist(id=a.get("id"), name=a.get("name", ""))
                for a in data.get("artists", [])
            ),
            album=(
                AlbumRef(
                    id=album_data.get("id"),
                    name=album_data.get("name", ""),
                    image_url=album_data.get("image_url"),
                )
                if album_data
                else None
            ),
            duration_ms=max(0, int(data.get("duration_ms") or 0)),
            uri=data.get("uri"),
        )

    @classmethod
    def from_spotify(cls, track: Dict[str, Any]) -> "Track":
        """Convert a Spotify API track object to a Track."""
        album = track.get("album") or {}
        images = album.get("images") or []
        return cls(
            id=track["id"],
            title=(track.get("name") or "").strip(),
            artists=tuple(
                Artist(id=a.get("id"), name=a["name"])
                for a in track.get("artists", [])
                if a.get("name") is not None
            ),
            album=(
                AlbumRef(
                    id=album.get("id"),
                    name=album.get("name", ""),
                    image_url=images[0].get("url") if images else None,
                )
                if album
                else None
            ),
            duration_ms=max(0, int(track.get("duration_ms") or 0)),
            uri=track.get("uri"),
        )


class VideoRef(NamedTuple):
    """A playable video resolved for a track.

    Looked up per play attempt and never persisted.
    """

    video_id: str
    title: str = ""
    thumbnail_url: Optional[str] = None

    @property
    def watch_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"
