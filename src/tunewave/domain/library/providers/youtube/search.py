"""YouTube video search.

Uses the YouTube Data API v3 when an API key is configured, otherwise
falls back to a yt-dlp ``ytsearch`` extraction (no key needed, slower).
"""

import re
from typing import List, Optional

import requests
import yt_dlp
from loguru import logger

from ...models import VideoRef
from .exceptions import InvalidYouTubeURLError, QuotaExceededError, YouTubeError

SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"

# YouTube's "Music" video category
MUSIC_CATEGORY_ID = "10"

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")

_URL_PATTERNS = [
    re.compile(r"(?:youtube\.com|music\.youtube\.com)/watch\?(?:.*&)?v=([A-Za-z0-9_-]{11})"),
    re.compile(r"youtu\.be/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/(?:embed|shorts|live)/([A-Za-z0-9_-]{11})"),
]


def extract_video_id(url: str) -> str:
    """Extract the 11-character video ID from a YouTube URL.

    Handles watch, short (youtu.be), embed, shorts and live URLs, and
    accepts a bare video ID.

    Raises:
        InvalidYouTubeURLError: If no video ID can be found
    """
    candidate = url.strip()
    if VIDEO_ID_PATTERN.match(candidate):
        return candidate

    for pattern in _URL_PATTERNS:
        match = pattern.search(candidate)
        if match:
            return match.group(1)

    raise InvalidYouTubeURLError(f"Could not extract video ID from URL: {url}")


def _search_data_api(query: str, api_key: str, max_results: int) -> List[VideoRef]:
    params = {
        "part": "snippet",
        "q": query,
        "maxResults": max_results,
        "type": "video",
        "videoCategoryId": MUSIC_CATEGORY_ID,
        "key": api_key,
    }
    try:
        response = requests.get(SEARCH_URL, params=params, timeout=30)
        response.raise_for_status()
    except requests.HTTPError as e:
        if e.response.status_code == 403:
            raise QuotaExceededError("YouTube Data API quota exceeded") from e
        raise YouTubeError(f"YouTube search failed: {e.response.status_code}") from e
    except requests.RequestException as e:
        raise YouTubeError(f"YouTube search failed: {e}") from e

    videos = []
    for item in response.json().get("items", []):
        video_id = item.get("id", {}).get("videoId")
        if not video_id:
            continue
        snippet = item.get("snippet", {})
        thumbnail = snippet.get("thumbnails", {}).get("high") or snippet.get(
            "thumbnails", {}
        ).get("default")
        videos.append(
            VideoRef(
                video_id=video_id,
                title=snippet.get("title", ""),
                thumbnail_url=thumbnail.get("url") if thumbnail else None,
            )
        )
    return videos


def _search_ytdlp(query: str, max_results: int) -> List[VideoRef]:
    ydl_opts = {
        "quiet": True,
        "no_warnings": True,
        "extract_flat": True,  # Don't resolve streams, just list entries
    }
    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(f"ytsearch{max_results}:{query}", download=False)
    except yt_dlp.utils.DownloadError as e:
        raise YouTubeError(f"yt-dlp search failed: {e}") from e

    videos = []
    for entry in (info or {}).get("entries") or []:
        if not entry or not entry.get("id"):
            continue
        thumbnails = entry.get("thumbnails") or []
        videos.append(
            VideoRef(
                video_id=entry["id"],
                title=entry.get("title") or "",
                thumbnail_url=thumbnails[-1].get("url") if thumbnails else None,
            )
        )
    return videos


def search_videos(
    query: str, api_key: Optional[str] = None, max_results: int = 5
) -> List[VideoRef]:
    """Search YouTube for videos matching query.

    Args:
        query: Free-text search
        api_key: YouTube Data API key; yt-dlp is used when absent
        max_results: Maximum number of results

    Returns:
        Matching videos, best match first

    Raises:
        YouTubeError: If the search backend fails
    """
    if not query.strip():
        return []

    if api_key:
        videos = _search_data_api(query, api_key, max_results)
        backend = "data-api"
    else:
        videos = _search_ytdlp(query, max_results)
        backend = "yt-dlp"

    logger.debug(f"YouTube search ({backend}) returned {len(videos)} videos for: {query}")
    return videos
