"""
Async catalog/video lookup used by the playback coordinator.

The coordinator depends only on the LookupService protocol. CatalogLookup
implements it over the blocking Spotify and YouTube providers, running each
call in a worker thread so the event loop never blocks on HTTP.
"""

import asyncio
from typing import List, Optional, Protocol, Sequence

from loguru import logger

from tunewave.core.config import Config
from tunewave.core.exceptions import CatalogError

from .models import Track, VideoRef
from .providers.spotify import api as spotify_api
from .providers.spotify.auth import TokenCache
from .providers.youtube import search as youtube_search
from .providers.youtube.exceptions import YouTubeError


class LookupService(Protocol):
    """External track/video lookup contract.

    ``search_video`` reports failure as None. The catalog methods may raise;
    the coordinator treats any exception as a failed refresh.
    """

    async def search_video(self, query: str) -> Optional[VideoRef]: ...

    async def get_artist_top_tracks(self, artist_id: str) -> List[Track]: ...

    async def get_recommendations(self, seed_track_ids: Sequence[str]) -> List[Track]: ...

    async def get_new_releases(self) -> List[Track]: ...


class TrackCatalog(Protocol):
    """Catalog browsing used by the web API."""

    async def search_tracks(self, query: str) -> List[Track]: ...

    async def get_track(self, track_id: str) -> Optional[Track]: ...


class CatalogLookup:
    """LookupService backed by the Spotify Web API and YouTube search."""

    def __init__(self, config: Config, tokens: Optional[TokenCache] = None):
        self.market = config.lookup.market
        self.max_video_results = config.lookup.max_video_results
        self.youtube_api_key = config.youtube.api_key
        self.tokens = tokens or TokenCache(
            config.spotify.client_id, config.spotify.client_secret
        )

    async def search_video(self, query: str) -> Optional[VideoRef]:
        try:
            videos = await asyncio.to_thread(
                youtube_search.search_videos,
                query,
                self.youtube_api_key,
                self.max_video_results,
            )
        except YouTubeError as e:
            logger.warning(f"Video search failed for '{query}': {e}")
            return None

        if not videos:
            logger.info(f"No video found for '{query}'")
            return None
        return videos[0]

    async def get_artist_top_tracks(self, artist_id: str) -> List[Track]:
        return await asyncio.to_thread(
            spotify_api.get_artist_top_tracks, self.tokens, artist_id, self.market
        )

    async def get_recommendations(self, seed_track_ids: Sequence[str]) -> List[Track]:
        return await asyncio.to_thread(
            spotify_api.get_recommendations,
            self.tokens,
            list(seed_track_ids),
            10,
            self.market,
        )

    async def get_new_releases(self) -> List[Track]:
        return await asyncio.to_thread(
            spotify_api.get_new_releases, self.tokens, 10, self.market
        )

    async def get_track(self, track_id: str) -> Optional[Track]:
        """Resolve a track ID to a Track (used by the web API)."""
        try:
            return await asyncio.to_thread(
                spotify_api.get_track, self.tokens, track_id, self.market
            )
        except CatalogError as e:
            logger.warning(f"Track lookup failed for {track_id}: {e}")
            return None

    async def search_tracks(self, query: str) -> List[Track]:
        try:
            return await asyncio.to_thread(
                spotify_api.search_tracks, self.tokens, query, 20, self.market
            )
        except CatalogError as e:
            logger.warning(f"Track search failed for '{query}': {e}")
            return []
