"""YouTube-specific exceptions for error handling."""

from tunewave.core.exceptions import TunewaveError


class YouTubeError(TunewaveError):
    """Base exception for YouTube operations."""

    pass


class InvalidYouTubeURLError(YouTubeError):
    """Raised when URL is not a valid YouTube URL."""

    pass


class QuotaExceededError(YouTubeError):
    """Raised when the Data API key has exhausted its daily quota."""

    pass
