"""
Spotify catalog provider.

App-token (client credentials) access to the Spotify Web API catalog.
"""

from . import api, auth
from .auth import TokenCache

__all__ = ["api", "auth", "TokenCache"]
