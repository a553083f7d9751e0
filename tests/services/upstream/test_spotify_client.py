from __future__ import annotations

import httpx
import pytest

from topgrid.domain.enums import EntityType, TimeRange
from topgrid.domain.errors import AuthError, InvalidParameterError, TransientUpstreamError, UpstreamError
from topgrid.services.upstream.spotify_client import SpotifyTopItemsClient


def _client(handler) -> SpotifyTopItemsClient:
    return SpotifyTopItemsClient(httpx.Client(transport=httpx.MockTransport(handler)))


def test_request_shape(fake_spotify, artists):
    api = fake_spotify(artists(3))
    items = _client(api).list_top_items("good-token", EntityType.artists, TimeRange.short_term, limit=50, offset=0)

    assert [i["name"] for i in items] == ["Artist 0", "Artist 1", "Artist 2"]
    req = api.calls[0]
    assert req.url.path.endswith("/me/top/artists")
    assert req.url.params["time_range"] == "short_term"
    assert req.url.params["limit"] == "50"
    assert req.url.params["offset"] == "0"
    assert req.headers["Authorization"] == "Bearer good-token"


def test_bad_token_is_auth_error(fake_spotify, artists):
    api = fake_spotify(artists(3))
    with pytest.raises(AuthError) as ei:
        _client(api).list_top_items("expired", EntityType.artists, TimeRange.medium_term, limit=50, offset=0)
    assert ei.value.detail == "Invalid access token"


def test_blank_token_fails_without_a_request(fake_spotify):
    api = fake_spotify([])
    with pytest.raises(AuthError):
        _client(api).list_top_items("  ", EntityType.tracks, TimeRange.medium_term, limit=50, offset=0)
    assert api.calls == []


@pytest.mark.parametrize("status", [429, 500, 503])
def test_transient_statuses(fake_spotify, status):
    api = fake_spotify([], script={0: status})
    with pytest.raises(TransientUpstreamError) as ei:
        _client(api).list_top_items("good-token", EntityType.artists, TimeRange.medium_term, limit=50, offset=0)
    assert ei.value.status == status
    if status == 429:
        assert ei.value.retry_after == 0.0


def test_network_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransientUpstreamError):
        _client(handler).list_top_items("t", EntityType.artists, TimeRange.medium_term, limit=50, offset=0)


def test_other_4xx_is_fatal_upstream_error(fake_spotify):
    api = fake_spotify([], script={0: 400})
    with pytest.raises(UpstreamError) as ei:
        _client(api).list_top_items("good-token", EntityType.artists, TimeRange.medium_term, limit=50, offset=0)
    assert ei.value.status == 400


def test_invalid_json_is_upstream_error():
    def handler(request):
        return httpx.Response(200, content=b"<html>oops</html>")

    with pytest.raises(UpstreamError):
        _client(handler).list_top_items("t", EntityType.artists, TimeRange.medium_term, limit=50, offset=0)


def test_missing_items_key_means_empty_page():
    def handler(request):
        return httpx.Response(200, json={"total": 0})

    assert _client(handler).list_top_items("t", EntityType.artists, TimeRange.medium_term, limit=50, offset=0) == []


def test_recommended_has_no_top_listing(fake_spotify):
    api = fake_spotify([])
    with pytest.raises(InvalidParameterError):
        _client(api).list_top_items("good-token", EntityType.recommended, TimeRange.short_term, limit=5, offset=0)
    assert api.calls == []


def test_search_and_saved_request_shape():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json={"artists": {"items": [{"name": "X", "popularity": 60}]}})
        return httpx.Response(200, json={"items": [{"track": {"artists": [{"name": "Y"}]}}]})

    c = _client(handler)
    assert c.search_artists("good-token", "art pop", limit=5) == [{"name": "X", "popularity": 60}]
    assert c.list_saved("good-token", "tracks", limit=50)[0]["track"]["artists"][0]["name"] == "Y"
    assert seen[0].url.params["q"] == "genre:art pop"
    assert seen[0].url.params["type"] == "artist"
    assert seen[1].url.path.endswith("/me/tracks")
    assert seen[1].url.params["limit"] == "50"
