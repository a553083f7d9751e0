# topgrid/domain/errors.py
from __future__ import annotations

from typing import Optional


class CollageError(Exception):
    """Base class for failures that abort a collage request."""

    category: str = "internal"

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class AuthError(CollageError):
    """Missing, invalid or expired upstream credential."""
    category = "auth"


class InvalidParameterError(CollageError):
    """Bad grid size, canvas size, entity type or time range. Raised before any network call."""
    category = "parameter"


class UpstreamError(CollageError):
    """Upstream answered with something we cannot use (unexpected 4xx, malformed payload)."""
    category = "upstream"

    def __init__(self, message: str, *, status: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message, detail=detail)
        self.status = status


class CompositionError(CollageError):
    """Canvas allocation or encoding failed."""
    category = "internal"


class CollageTimeoutError(CollageError):
    """The request deadline expired before every tile was rendered."""
    category = "timeout"


# ---- recoverable: handled where they happen, never reach the caller ----

class TransientUpstreamError(Exception):
    """Network error, 429 or 5xx from the listing endpoint. Retried, then treated as end-of-data."""

    def __init__(self, message: str, *, status: Optional[int] = None, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class ImageFetchError(Exception):
    """A single image could not be downloaded or decoded. Substituted with the placeholder."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
