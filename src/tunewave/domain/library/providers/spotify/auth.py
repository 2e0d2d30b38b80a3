"""
Spotify client-credentials authentication.

Catalog lookups (top tracks, recommendations, new releases) need only an
app token, so no end-user login is involved here.
"""

import base64
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import requests
from loguru import logger

from tunewave.core.exceptions import CatalogError

TOKEN_URL = "https://accounts.spotify.com/api/token"

# Tokens are renewed this long before they expire
EXPIRY_MARGIN = timedelta(seconds=60)


def is_token_expired(token_data: Dict[str, Any]) -> bool:
    """Check whether a cached token is missing an expiry or past it."""
    expires_at = token_data.get("expires_at")
    if not expires_at:
        return True
    try:
        expiry = datetime.fromisoformat(expires_at)
    except ValueError:
        return True
    return datetime.now() >= expiry - EXPIRY_MARGIN


def request_token(client_id: str, client_secret: str) -> Dict[str, Any]:
    """Exchange app credentials for an access token.

    Returns:
        Token dict with ``access_token`` and an ISO ``expires_at``

    Raises:
        CatalogError: If credentials are missing or Spotify rejects them
    """
    if not client_id or not client_secret:
        raise CatalogError("Spotify client credentials are not configured")

    credentials = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()
    try:
        response = requests.post(
            TOKEN_URL,
            data={"grant_type": "client_credentials"},
            headers={"Authorization": f"Basic {credentials}"},
            timeout=30,
        )
        response.raise_for_status()
    except requests.HTTPError as e:
        raise CatalogError(
            f"Spotify token request failed: {e.response.status_code}",
            status_code=e.response.status_code,
        ) from e
    except requests.RequestException as e:
        raise CatalogError(f"Spotify token request failed: {e}") from e

    token_data = response.json()
    expires_in = token_data.get("expires_in", 3600)
    token_data["expires_at"] = (datetime.now() + timedelta(seconds=expires_in)).isoformat()
    logger.debug(f"Spotify app token acquired, expires in {expires_in}s")
    return token_data


class TokenCache:
    """Holds the current app token and renews it when it expires."""

    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self._token: Optional[Dict[str, Any]] = None

    def access_token(self) -> str:
        if self._token is None or is_token_expired(self._token):
            self._token = request_token(self.client_id, self.client_secret)
        return self._token["access_token"]

    def invalidate(self) -> None:
        self._token = None
