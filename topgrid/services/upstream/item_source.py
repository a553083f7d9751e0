# topgrid/services/upstream/item_source.py
from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from topgrid.common.iter import take_padded
from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.entities.ranked_item import RankedItem
from topgrid.domain.enums import EntityType, TimeRange
from topgrid.domain.errors import InvalidParameterError, TransientUpstreamError
from topgrid.domain.ports.item_source import ItemSourcePort, TopItemsPort
from topgrid.services.mappers.upstream import to_ranked_item

logger = get_logger()

T = TypeVar("T")


class UpstreamRetry:
    """
    Bounded retry of transient upstream failures with capped exponential
    backoff; Retry-After wins when the upstream sends one.
    """

    def __init__(
        self,
        *,
        max_retries: Optional[int] = None,
        backoff_sec: Optional[float] = None,
        max_backoff_sec: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        cfg = get_settings().upstream
        self.max_retries = int(cfg.max_retries if max_retries is None else max_retries)
        self.backoff_sec = float(cfg.backoff_sec if backoff_sec is None else backoff_sec)
        self.max_backoff_sec = float(cfg.max_backoff_sec if max_backoff_sec is None else max_backoff_sec)
        self._sleep = sleep

    def call(self, fn: Callable[[], T], *, what: str) -> Optional[T]:
        """None means retries ran out; AuthError / UpstreamError propagate untouched."""
        attempt = 0
        while True:
            try:
                return fn()
            except TransientUpstreamError as e:
                if attempt >= self.max_retries:
                    logger.warning("%s failed after %d attempt(s): %s; giving up", what, attempt + 1, e)
                    return None
                delay = self.delay_for(attempt, e.retry_after)
                attempt += 1
                logger.info("%s: %s, retry %d in %.2fs", what, e, attempt, delay)
                self._sleep(delay)

    def delay_for(self, attempt: int, retry_after: Optional[float]) -> float:
        if retry_after is not None:
            return min(retry_after, self.max_backoff_sec)
        return min(self.backoff_sec * (2 ** attempt), self.max_backoff_sec)


class ItemSourceAdapter(ItemSourcePort):
    """
    Collects exactly `count` ranked items from the paginated listing.

    - fixed page size; offset advances by page_size every iteration
    - a page shorter than page_size means the listing is exhausted
    - AuthError / UpstreamError propagate untouched (no padding)
    - transient failures are retried per page; once retries run out
      the listing is treated as exhausted
    - the result is padded with placeholder items up to `count`
    - EntityType.recommended is handed to `recommender`
    """

    def __init__(
        self,
        source: TopItemsPort,
        *,
        page_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        backoff_sec: Optional[float] = None,
        max_backoff_sec: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        recommender: Optional[ItemSourcePort] = None,
    ) -> None:
        cfg = get_settings().upstream
        self.source = source
        self.page_size = int(page_size or cfg.page_size)
        self.retry = UpstreamRetry(
            max_retries=max_retries, backoff_sec=backoff_sec, max_backoff_sec=max_backoff_sec, sleep=sleep
        )
        self.recommender = recommender
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")

    def collect(self, token: str, entity_type: EntityType, time_range: TimeRange, count: int) -> List[RankedItem]:
        entity_type = EntityType(entity_type)
        time_range = TimeRange(time_range)
        if entity_type == EntityType.recommended:
            if self.recommender is None:
                raise InvalidParameterError("recommended artists are not available here")
            return self.recommender.collect(token, entity_type, time_range, count)

        raw: List[Dict[str, Any]] = []
        offset = 0
        while len(raw) < count:
            page = self._fetch_page(token, entity_type, time_range, offset)
            if page is None:
                break
            raw.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size

        real = [to_ranked_item(r, i, entity_type) for i, r in enumerate(raw[:count])]
        if len(real) < count:
            logger.info(
                "top %s (%s): %d of %d items available, padding %d",
                entity_type, time_range, len(real), count, count - len(real),
            )
        return take_padded(real, count, RankedItem.padding)

    def _fetch_page(
        self, token: str, entity_type: EntityType, time_range: TimeRange, offset: int
    ) -> Optional[List[Dict[str, Any]]]:
        """One page with bounded retries. None means 'give up, treat as end-of-data'."""
        return self.retry.call(
            lambda: self.source.list_top_items(token, entity_type, time_range, limit=self.page_size, offset=offset),
            what=f"top {entity_type} page offset={offset}",
        )
