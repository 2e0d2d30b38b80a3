"""
Related-track lookahead for continuous playback.

The lookahead is refreshed for every track that starts: the primary artist's
top tracks, topped up with recommendations when there are too few. If the
catalog cannot be reached, cached new releases stand in.
"""

import asyncio
from typing import Iterable, List, Sequence

from tunewave.core.exceptions import CatalogError

from ..library.lookup import LookupService
from ..library.models import Track

# Below this many artist tracks, recommendations are added
MIN_ARTIST_TRACKS = 5

MAX_LOOKAHEAD = 10

MAX_FALLBACK = 5


def _exclude(tracks: Iterable[Track], excluded_ids: set) -> List[Track]:
    result = []
    for track in tracks:
        if track.id in excluded_ids:
            continue
        excluded_ids.add(track.id)
        result.append(track)
    return result


async def fetch_related(lookup: LookupService, track: Track, timeout: float) -> List[Track]:
    """Build the lookahead for track from the catalog.

    Raises:
        CatalogError: If the track has no artist to seed from
        asyncio.TimeoutError: If a catalog call exceeds timeout
        Exception: Whatever the lookup service raises
    """
    artist = track.primary_artist
    if artist is None or not artist.id:
        raise CatalogError(f"Track {track.id} has no artist to seed related tracks")

    top_tracks = await asyncio.wait_for(lookup.get_artist_top_tracks(artist.id), timeout)
    seen = {track.id}
    related = _exclude(top_tracks, seen)

    if len(related) < MIN_ARTIST_TRACKS:
        recommendations = await asyncio.wait_for(
            lookup.get_recommendations([track.id]), timeout
        )
        related.extend(_exclude(recommendations, seen))

    return related[:MAX_LOOKAHEAD]


def fallback_related(
    new_releases: Sequence[Track], track: Track, existing: Sequence[Track]
) -> List[Track]:
    """Replace the lookahead with cached new releases.

    Drops the current track and anything already in the existing lookahead;
    at most five releases are returned.
    """
    excluded = {track.id} | {t.id for t in existing}
    return [t for t in new_releases if t.id not in excluded][:MAX_FALLBACK]
