# topgrid/services/upstream/spotify_client.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.enums import EntityType, TimeRange
from topgrid.domain.errors import AuthError, InvalidParameterError, TransientUpstreamError, UpstreamError
from topgrid.domain.ports.item_source import LibraryPort, TopItemsPort

logger = get_logger()

_TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


class SpotifyTopItemsClient(TopItemsPort, LibraryPort):
    """
    Thin httpx adapter over the listener endpoints: /me/top, /me/{tracks,albums}
    and artist search.
    Classifies failures; retrying is the caller's job.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        base_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
    ) -> None:
        cfg = get_settings().upstream
        self.base_url = (base_url or cfg.base_url).rstrip("/")
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_sec or cfg.timeout_sec))
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def list_top_items(
        self,
        token: str,
        entity_type: EntityType,
        time_range: TimeRange,
        *,
        limit: int,
        offset: int,
    ) -> List[Dict[str, Any]]:
        entity_type = EntityType(entity_type)
        if entity_type == EntityType.recommended:
            raise InvalidParameterError("recommended artists have no top-items listing")
        params = {"time_range": TimeRange(time_range).value, "limit": int(limit), "offset": int(offset)}
        payload = self._get_json(token, f"/me/top/{entity_type.value}", params, what=f"top {entity_type}")
        return _items_of(payload)

    def list_saved(self, token: str, kind: str, *, limit: int) -> List[Dict[str, Any]]:
        """GET /me/{tracks|albums}: one page of the listener's saved library."""
        if kind not in ("tracks", "albums"):
            raise ValueError(f"unsupported saved kind: {kind!r}")
        payload = self._get_json(token, f"/me/{kind}", {"limit": int(limit)}, what=f"saved {kind}")
        return _items_of(payload)

    def search_artists(self, token: str, genre: str, *, limit: int) -> List[Dict[str, Any]]:
        """GET /search?q=genre:<genre>&type=artist."""
        params = {"q": f"genre:{genre}", "type": "artist", "limit": int(limit)}
        payload = self._get_json(token, "/search", params, what=f"artist search genre={genre!r}")
        artists = payload.get("artists") if isinstance(payload, dict) else None
        return _items_of(artists)

    def _get_json(self, token: str, path: str, params: Dict[str, Any], *, what: str) -> Any:
        if not token or not token.strip():
            raise AuthError("missing access token")

        try:
            resp = self._client.get(
                f"{self.base_url}{path}", params=params, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.TransportError as e:
            raise TransientUpstreamError(f"network error on {what}: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthError("upstream rejected the access token", detail=_error_message(resp))
        if resp.status_code in _TRANSIENT_STATUSES:
            raise TransientUpstreamError(
                f"upstream returned {resp.status_code}",
                status=resp.status_code,
                retry_after=_retry_after(resp),
            )
        if resp.status_code >= 400:
            raise UpstreamError(
                f"upstream returned {resp.status_code}", status=resp.status_code, detail=_error_message(resp)
            )

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError("upstream returned invalid JSON", status=resp.status_code) from e


def _items_of(payload: Any) -> List[Dict[str, Any]]:
    items = payload.get("items") if isinstance(payload, dict) else None
    if items is None:
        return []
    if not isinstance(items, list):
        raise UpstreamError("upstream 'items' is not a list")
    return [it for it in items if isinstance(it, dict)]


def _retry_after(resp: httpx.Response) -> Optional[float]:
    raw = resp.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


def _error_message(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or None
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return err.get("message")
    if isinstance(err, str):
        return body.get("error_description") or err
    return None
