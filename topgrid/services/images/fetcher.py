# topgrid/services/images/fetcher.py
from __future__ import annotations

import io
import threading
from pathlib import Path
from typing import Optional, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.entities.ranked_item import RankedItem
from topgrid.domain.entities.tile import ResolvedImage
from topgrid.domain.errors import ImageFetchError
from topgrid.domain.ports.images import ImageFetcherPort

logger = get_logger()

PLACEHOLDER_SIZE = 64


def make_placeholder_png(color: Tuple[int, int, int], size: int = PLACEHOLDER_SIZE) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (size, size), color=color).save(buf, format="PNG")
    return buf.getvalue()


class ImageFetcher(ImageFetcherPort):
    """
    Resolves an item's image URL to raw bytes. Never raises for one item:
    absent refs, HTTP errors, oversized or undecodable bodies all yield the
    placeholder with was_placeholder=True.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        timeout_sec: Optional[float] = None,
        max_retries: Optional[int] = None,
        placeholder: Optional[bytes] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        cfg = get_settings().images
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_sec or cfg.timeout_sec), follow_redirects=True
        )
        self._owns_client = client is None
        self.max_retries = int(cfg.max_retries if max_retries is None else max_retries)
        self.max_bytes = int(cfg.max_bytes)
        self.placeholder = placeholder if placeholder is not None else self._load_placeholder(
            cfg.placeholder_path, cfg.placeholder_color
        )
        self.stop_event = stop_event

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @staticmethod
    def _load_placeholder(path: Optional[Path], color: Tuple[int, int, int]) -> bytes:
        if path:
            try:
                data = Path(path).read_bytes()
                _verify(data)
                return data
            except (OSError, SyntaxError, UnidentifiedImageError, Image.DecompressionBombError) as e:
                logger.warning("placeholder image %s unusable (%s); using a plain fill", path, e)
        return make_placeholder_png(color)

    def resolve(self, item: RankedItem) -> ResolvedImage:
        if not item.image_url:
            if not item.is_placeholder:
                logger.debug("rank %d (%s) has no image; using placeholder", item.rank, item.display_name)
            return ResolvedImage(owner_rank=item.rank, data=self.placeholder, was_placeholder=True)
        if self.stop_event is not None and self.stop_event.is_set():
            return ResolvedImage(owner_rank=item.rank, data=self.placeholder, was_placeholder=True)

        try:
            data = self._fetch_with_retry(item.image_url)
        except ImageFetchError as e:
            logger.warning("rank %d (%s): image fetch failed, using placeholder: %s", item.rank, item.display_name, e)
            return ResolvedImage(owner_rank=item.rank, data=self.placeholder, was_placeholder=True)
        return ResolvedImage(owner_rank=item.rank, data=data, was_placeholder=False)

    def _fetch_with_retry(self, url: str) -> bytes:
        last: Optional[ImageFetchError] = None
        for _ in range(self.max_retries + 1):
            if self.stop_event is not None and self.stop_event.is_set():
                raise ImageFetchError(url, "cancelled")
            try:
                return self._fetch_once(url)
            except ImageFetchError as e:
                last = e
        assert last is not None
        raise last

    def _fetch_once(self, url: str) -> bytes:
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as e:
            raise ImageFetchError(url, f"transport error: {e}") from e
        except RuntimeError as e:
            # client closed under us after the deadline
            raise ImageFetchError(url, f"client unavailable: {e}") from e
        if resp.status_code != 200:
            raise ImageFetchError(url, f"HTTP {resp.status_code}")
        data = resp.content
        if not data:
            raise ImageFetchError(url, "empty body")
        if len(data) > self.max_bytes:
            raise ImageFetchError(url, f"body too large ({len(data)} bytes)")
        try:
            _verify(data)
        except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as e:
            raise ImageFetchError(url, f"not a decodable image: {e}") from e
        return data


def _verify(data: bytes) -> None:
    with Image.open(io.BytesIO(data)) as im:
        im.verify()
