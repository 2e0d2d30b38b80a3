"""
YouTube provider for tunewave.

Finds the video used to play a catalog track. Public search needs no
authentication; an optional Data API key makes it faster.
"""

from .exceptions import InvalidYouTubeURLError, QuotaExceededError, YouTubeError
from .search import extract_video_id, search_videos

__all__ = [
    "search_videos",
    "extract_video_id",
    "YouTubeError",
    "InvalidYouTubeURLError",
    "QuotaExceededError",
]
