from __future__ import annotations
from typing import Any, Dict, List, Protocol
from topgrid.domain.entities.ranked_item import RankedItem
from topgrid.domain.enums import EntityType, TimeRange


class TopItemsPort(Protocol):
    """One page of the upstream 'top items' listing, raw JSON items."""
    def list_top_items(
        self,
        token: str,
        entity_type: EntityType,
        time_range: TimeRange,
        *,
        limit: int,
        offset: int,
    ) -> List[Dict[str, Any]]: ...


class ItemSourcePort(Protocol):
    def collect(self, token: str, entity_type: EntityType, time_range: TimeRange, count: int) -> List[RankedItem]: ...


class LibraryPort(Protocol):
    """Saved-library pages and genre-based artist search, raw JSON items."""
    def list_saved(self, token: str, kind: str, *, limit: int) -> List[Dict[str, Any]]: ...

    def search_artists(self, token: str, genre: str, *, limit: int) -> List[Dict[str, Any]]: ...
