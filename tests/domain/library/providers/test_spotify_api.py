"""Tests for Spotify catalog API functions."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests

from tunewave.core.exceptions import CatalogError
from tunewave.domain.library.providers.spotify import api
from tunewave.domain.library.providers.spotify.auth import (
    TokenCache,
    is_token_expired,
    request_token,
)


def _response(payload=None, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload or {}
    if status >= 400:
        error = requests.HTTPError(f"{status}")
        error.response = response
        response.raise_for_status.side_effect = error
    else:
        response.raise_for_status.return_value = None
    return response


def _track(track_id, name="Song"):
    return {"id": track_id, "name": name, "artists": [{"id": "a1", "name": "Band"}]}


@pytest.fixture
def tokens():
    cache = MagicMock(spec=TokenCache)
    cache.access_token.return_value = "token-123"
    return cache


class TestAuth:
    """Tests for client-credentials token handling."""

    def test_token_expiry(self) -> None:
        future = (datetime.now() + timedelta(hours=1)).isoformat()
        past = (datetime.now() - timedelta(seconds=1)).isoformat()
        assert is_token_expired({"expires_at": future}) is False
        assert is_token_expired({"expires_at": past}) is True
        assert is_token_expired({}) is True
        assert is_token_expired({"expires_at": "garbage"}) is True

    def test_missing_credentials_raise(self) -> None:
        with pytest.raises(CatalogError):
            request_token("", "")

    def test_request_token_sets_expiry(self) -> None:
        with patch("requests.post", return_value=_response({"access_token": "abc", "expires_in": 3600})) as post:
            token = request_token("id", "secret")

        assert token["access_token"] == "abc"
        assert is_token_expired(token) is False
        assert post.call_args.kwargs["data"] == {"grant_type": "client_credentials"}
        assert post.call_args.kwargs["headers"]["Authorization"].startswith("Basic ")

    def test_rejected_credentials(self) -> None:
        with patch("requests.post", return_value=_response(status=400)):
            with pytest.raises(CatalogError) as excinfo:
                request_token("id", "bad")
        assert excinfo.value.status_code == 400

    def test_cache_reuses_valid_token(self) -> None:
        cache = TokenCache("id", "secret")
        token = {"access_token": "abc", "expires_at": (datetime.now() + timedelta(hours=1)).isoformat()}
        with patch(
            "tunewave.domain.library.providers.spotify.auth.request_token", return_value=token
        ) as request:
            assert cache.access_token() == "abc"
            assert cache.access_token() == "abc"
        request.assert_called_once()


class TestCatalogCalls:
    """Tests for catalog endpoints."""

    def test_artist_top_tracks(self, tokens) -> None:
        payload = {"tracks": [_track("t1"), None, {"name": "no id"}, _track("t2")]}
        with patch("requests.get", return_value=_response(payload)) as get:
            tracks = api.get_artist_top_tracks(tokens, "artist-1", market="SE")

        assert [t.id for t in tracks] == ["t1", "t2"]
        assert get.call_args.args[0] == f"{api.API_BASE}/artists/artist-1/top-tracks"
        assert get.call_args.kwargs["params"] == {"market": "SE"}
        assert get.call_args.kwargs["headers"] == {"Authorization": "Bearer token-123"}

    def test_recommendations_cap_seeds(self, tokens) -> None:
        """Spotify accepts at most five seed tracks."""
        with patch("requests.get", return_value=_response({"tracks": [_track("r1")]})) as get:
            tracks = api.get_recommendations(tokens, ["a", "b", "c", "d", "e", "f"])

        assert [t.id for t in tracks] == ["r1"]
        assert get.call_args.kwargs["params"]["seed_tracks"] == "a,b,c,d,e"

    def test_recommendations_without_seeds(self, tokens) -> None:
        with patch("requests.get") as get:
            assert api.get_recommendations(tokens, []) == []
        get.assert_not_called()

    def test_new_releases_take_first_album_track(self, tokens) -> None:
        releases = {"albums": {"items": [{"id": "al1"}, {"id": "al2"}]}}
        albums = {
            "albums": [
                {
                    "id": "al1",
                    "name": "First",
                    "images": [{"url": "http://cover"}],
                    "tracks": {"items": [_track("n1"), _track("n2")]},
                },
                {"id": "al2", "name": "Empty", "images": [], "tracks": {"items": []}},
            ]
        }
        with patch("requests.get", side_effect=[_response(releases), _response(albums)]):
            tracks = api.get_new_releases(tokens)

        assert [t.id for t in tracks] == ["n1"]
        assert tracks[0].album.name == "First"
        assert tracks[0].album.image_url == "http://cover"

    def test_http_error_raises_catalog_error(self, tokens) -> None:
        with patch("requests.get", return_value=_response(status=503)):
            with pytest.raises(CatalogError) as excinfo:
                api.get_artist_top_tracks(tokens, "artist-1")
        assert excinfo.value.status_code == 503

    def test_unauthorized_retries_with_new_token(self, tokens) -> None:
        """A 401 invalidates the cached token and retries once."""
        with patch(
            "requests.get",
            side_effect=[_response(status=401), _response({"tracks": [_track("t1")]})],
        ) as get:
            tracks = api.get_artist_top_tracks(tokens, "artist-1")

        assert [t.id for t in tracks] == ["t1"]
        assert get.call_count == 2
        tokens.invalidate.assert_called_once()

    def test_connection_error(self, tokens) -> None:
        with patch("requests.get", side_effect=requests.ConnectionError("down")):
            with pytest.raises(CatalogError):
                api.search_tracks(tokens, "song")

    def test_search_tracks(self, tokens) -> None:
        payload = {"tracks": {"items": [_track("s1", "Found")]}}
        with patch("requests.get", return_value=_response(payload)):
            tracks = api.search_tracks(tokens, "found")
        assert [t.title for t in tracks] == ["Found"]

    def test_blank_search_skips_request(self, tokens) -> None:
        with patch("requests.get") as get:
            assert api.search_tracks(tokens, "   ") == []
        get.assert_not_called()

    def test_get_track(self, tokens) -> None:
        with patch("requests.get", return_value=_response(_track("t9", "Nine"))):
            assert api.get_track(tokens, "t9").title == "Nine"
