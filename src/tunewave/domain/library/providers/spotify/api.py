"""
Spotify catalog API operations.

Blocking functions over ``requests``; callers on the event loop run them
in a worker thread. Every function raises CatalogError on failure and
returns normalized Track objects.
"""

from typing import Any, Dict, List, Optional, Sequence

import requests
from loguru import logger

from tunewave.core.exceptions import CatalogError

from ...models import Track
from .auth import TokenCache

# Spotify API base URL
API_BASE = "https://api.spotify.com/v1"

# Spotify caps the seed list for recommendations
MAX_SEED_TRACKS = 5

# Batch limit for /albums?ids=
MAX_ALBUM_IDS = 20


def _get(
    tokens: TokenCache, path: str, params: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """GET an API path, retrying once with a fresh token on 401."""
    for attempt in range(2):
        headers = {"Authorization": f"Bearer {tokens.access_token()}"}
        try:
            response = requests.get(
                f"{API_BASE}{path}", params=params, headers=headers, timeout=30
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            status = e.response.status_code
            if status == 401 and attempt == 0:
                logger.info("Spotify token rejected, requesting a new one")
                tokens.invalidate()
                continue
            raise CatalogError(f"Spotify GET {path} failed: {status}", status_code=status) from e
        except requests.RequestException as e:
            raise CatalogError(f"Spotify GET {path} failed: {e}") from e
    raise CatalogError(f"Spotify GET {path} failed: unauthorized")


def _tracks_from(items: List[Optional[Dict[str, Any]]]) -> List[Track]:
    # Unavailable tracks come back as null or without an id
    return [Track.from_spotify(item) for item in items if item and item.get("id")]


def get_artist_top_tracks(tokens: TokenCache, artist_id: str, market: str = "US") -> List[Track]:
    """Fetch an artist's top tracks."""
    data = _get(tokens, f"/artists/{artist_id}/top-tracks", {"market": market})
    tracks = _tracks_from(data.get("tracks", []))
    logger.debug(f"Fetched {len(tracks)} top tracks for artist {artist_id}")
    return tracks


def get_recommendations(
    tokens: TokenCache, seed_track_ids: Sequence[str], limit: int = 10, market: str = "US"
) -> List[Track]:
    """Fetch recommendations seeded by up to five track IDs."""
    seeds = [track_id for track_id in seed_track_ids if track_id][:MAX_SEED_TRACKS]
    if not seeds:
        return []

    data = _get(
        tokens,
        "/recommendations",
        {"seed_tracks": ",".join(seeds), "limit": limit, "market": market},
    )
    tracks = _tracks_from(data.get("tracks", []))
    logger.debug(f"Fetched {len(tracks)} recommendations for seeds {seeds}")
    return tracks


def get_new_releases(tokens: TokenCache, limit: int = 10, market: str = "US") -> List[Track]:
    """Fetch new album releases and return the opening track of each.

    The browse endpoint returns simplified albums without tracks, so the
    albums are re-fetched in one batch to get their track listings.
    """
    data = _get(tokens, "/browse/new-releases", {"limit": limit, "country": market})
    album_ids = [
        album["id"] for album in data.get("albums", {}).get("items", []) if album.get("id")
    ][:MAX_ALBUM_IDS]
    if not album_ids:
        return []

    albums = _get(tokens, "/albums", {"ids": ",".join(album_ids), "market": market})

    tracks = []
    for album in albums.get("albums", []):
        if not album:
            continue
        items = album.get("tracks", {}).get("items", [])
        if not items or not items[0].get("id"):
            continue
        # Simplified tracks lack the album object; attach it for artwork
        first = dict(items[0])
        first["album"] = {k: album.get(k) for k in ("id", "name", "images")}
        tracks.append(Track.from_spotify(first))

    logger.debug(f"Fetched {len(tracks)} new-release tracks")
    return tracks


def get_track(tokens: TokenCache, track_id: str, market: str = "US") -> Track:
    """Fetch a single track by ID."""
    data = _get(tokens, f"/tracks/{track_id}", {"market": market})
    if not data.get("id"):
        raise CatalogError(f"Spotify returned no track for {track_id}")
    return Track.from_spotify(data)


def search_tracks(tokens: TokenCache, query: str, limit: int = 20, market: str = "US") -> List[Track]:
    """Search the catalog for tracks."""
    if not query.strip():
        return []
    data = _get(tokens, "/search", {"q": query, "type": "track", "limit": limit, "market": market})
    tracks = _tracks_from(data.get("tracks", {}).get("items", []))
    logger.info(f"Search found {len(tracks)} results for: {query}")
    return tracks
