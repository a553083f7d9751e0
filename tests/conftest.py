# tests/conftest.py
from __future__ import annotations
import io
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from PIL import Image

from topgrid.common.settings import get_settings

SPOTIFY = "https://api.spotify.test/v1"
IMG_HOST = "https://img.test"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Fresh Settings per test; nothing read from a developer's .env leaks in."""
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("STORAGE__BACKEND", "memory")
    monkeypatch.setenv("UPSTREAM__BASE_URL", SPOTIFY)
    monkeypatch.setenv("UPSTREAM__BACKOFF_SEC", "0")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def make_png() -> Callable[..., bytes]:
    def _make(color=(200, 30, 30), size: Tuple[int, int] = (64, 64), mode: str = "RGB") -> bytes:
        buf = io.BytesIO()
        Image.new(mode, size, color).save(buf, format="PNG")
        return buf.getvalue()
    return _make


def artist(name: str, url: Optional[str] = None, size: int = 640) -> dict:
    images = [] if url is None else [
        {"url": url + "?s=64", "width": 64, "height": 64},
        {"url": url, "width": size, "height": size},
    ]
    return {"name": name, "images": images, "genres": []}


@pytest.fixture()
def artists() -> Callable[[int], List[dict]]:
    """n upstream artists, each with an image served by image_host."""
    def _make(n: int, *, with_images: bool = True) -> List[dict]:
        return [artist(f"Artist {i}", f"{IMG_HOST}/a{i}.png" if with_images else None) for i in range(n)]
    return _make


class FakeSpotify:
    """Serves /me/top/{type} from a list; `script` maps call index -> status code override."""

    def __init__(self, items: List[dict], *, script: Optional[Dict[int, int]] = None, token: str = "good-token"):
        self.items = items
        self.script = dict(script or {})
        self.token = token
        self.calls: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        idx = len(self.calls)
        self.calls.append(request)
        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"error": {"status": 401, "message": "Invalid access token"}})
        if idx in self.script:
            status = self.script[idx]
            headers = {"Retry-After": "0"} if status == 429 else {}
            return httpx.Response(status, json={"error": {"status": status, "message": "scripted"}}, headers=headers)
        limit = int(request.url.params.get("limit", "20"))
        offset = int(request.url.params.get("offset", "0"))
        page = self.items[offset: offset + limit]
        return httpx.Response(200, json={"items": page, "limit": limit, "offset": offset, "total": len(self.items)})

    @property
    def offsets(self) -> List[int]:
        return [int(r.url.params["offset"]) for r in self.calls]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


class FakeImageHost:
    """Any URL under IMG_HOST returns a PNG unless listed in `failing`."""

    def __init__(self, png: bytes, *, failing: Optional[set] = None, status: int = 404):
        self.png = png
        self.failing = set(failing or ())
        self.status = status
        self.calls: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        if url in self.failing or "*" in self.failing:
            return httpx.Response(self.status)
        return httpx.Response(200, content=self.png, headers={"Content-Type": "image/png"})

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


@pytest.fixture()
def fake_spotify():
    return FakeSpotify


@pytest.fixture()
def fake_image_host():
    return FakeImageHost
