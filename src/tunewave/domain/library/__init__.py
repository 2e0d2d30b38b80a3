"""Music library domain: catalog models, providers and lookup."""

from .models import AlbumRef, Artist, Track, VideoRef

__all__ = ["Track", "Artist", "AlbumRef", "VideoRef"]
