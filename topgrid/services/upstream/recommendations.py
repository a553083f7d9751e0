# topgrid/services/upstream/recommendations.py
from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional, Set

from topgrid.common.iter import take_padded
from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.entities.ranked_item import RankedItem
from topgrid.domain.enums import EntityType, TimeRange
from topgrid.domain.ports.item_source import ItemSourcePort, LibraryPort, TopItemsPort
from topgrid.services.mappers.upstream import to_ranked_item
from topgrid.services.upstream.item_source import UpstreamRetry

logger = get_logger()


class RecommendationSource(ItemSourcePort):
    """
    Recommended artists for the listener, as a grid-ready item list.

    1. genres of the listener's top artists (first-seen order)
    2. artist names from saved tracks and saved albums are excluded
    3. each genre is searched; artists above `min_popularity` that are not
       already saved are kept, first occurrence of a name wins
    4. nothing found -> the first `fallback_count` top artists
    5. truncated / padded to `count` like the plain listing

    Saved-library or search pages that keep failing transiently are skipped;
    auth and fatal upstream errors propagate.
    """

    def __init__(
        self,
        top: TopItemsPort,
        library: Optional[LibraryPort] = None,
        *,
        seed_limit: Optional[int] = None,
        saved_limit: Optional[int] = None,
        search_limit: Optional[int] = None,
        min_popularity: Optional[int] = None,
        fallback_count: Optional[int] = None,
        retry: Optional[UpstreamRetry] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        cfg = get_settings().upstream
        self.top = top
        self.library = library if library is not None else top  # type: ignore[assignment]
        self.seed_limit = int(seed_limit or cfg.page_size)
        self.saved_limit = int(saved_limit or cfg.saved_limit)
        self.search_limit = int(search_limit or cfg.search_limit)
        self.min_popularity = int(cfg.min_popularity if min_popularity is None else min_popularity)
        self.fallback_count = int(fallback_count or cfg.fallback_count)
        self.retry = retry or UpstreamRetry(sleep=sleep)

    def collect(self, token: str, entity_type: EntityType, time_range: TimeRange, count: int) -> List[RankedItem]:
        time_range = TimeRange(time_range)
        seeds = self.retry.call(
            lambda: self.top.list_top_items(token, EntityType.artists, time_range, limit=self.seed_limit, offset=0),
            what="top artists (recommendation seeds)",
        ) or []
        if not seeds:
            logger.info("no top artists (%s) to seed recommendations; padding %d", time_range, count)
            return take_padded([], count, RankedItem.padding)

        saved = self._saved_artist_names(token)
        picked: List[Dict[str, Any]] = []
        seen: Set[str] = set()
        for genre in _genres_of(seeds):
            if len(picked) >= count:
                break
            found = self.retry.call(
                lambda g=genre: self.library.search_artists(token, g, limit=self.search_limit),
                what=f"artist search genre={genre!r}",
            ) or []
            for artist in found:
                name = _name_of(artist)
                if not name or name in saved or name in seen:
                    continue
                if _popularity_of(artist) <= self.min_popularity:
                    continue
                seen.add(name)
                picked.append(artist)

        if not picked:
            logger.info("no genre matches outside the saved library; falling back to top %d artists", self.fallback_count)
            picked = _unique_by_name(seeds[: self.fallback_count])

        real = [to_ranked_item(r, i, EntityType.artists) for i, r in enumerate(picked[:count])]
        if len(real) < count:
            logger.info("recommended artists: %d of %d available, padding %d", len(real), count, count - len(real))
        return take_padded(real, count, RankedItem.padding)

    def _saved_artist_names(self, token: str) -> Set[str]:
        names: Set[str] = set()
        for kind, key in (("tracks", "track"), ("albums", "album")):
            page = self.retry.call(
                lambda k=kind: self.library.list_saved(token, k, limit=self.saved_limit),
                what=f"saved {kind}",
            ) or []
            for item in page:
                name = _first_artist_name(item.get(key))
                if name:
                    names.add(name)
        return names


def _name_of(raw: Any) -> Optional[str]:
    name = raw.get("name") if isinstance(raw, dict) else None
    if not isinstance(name, str):
        return None
    return name.strip() or None


def _popularity_of(raw: Dict[str, Any]) -> int:
    try:
        return int(raw.get("popularity") or 0)
    except (TypeError, ValueError):
        return 0


def _first_artist_name(obj: Any) -> Optional[str]:
    artists = obj.get("artists") if isinstance(obj, dict) else None
    if not isinstance(artists, list) or not artists:
        return None
    return _name_of(artists[0])


def _genres_of(artists: List[Dict[str, Any]]) -> List[str]:
    out: List[str] = []
    for a in artists:
        genres = a.get("genres")
        if not isinstance(genres, list):
            continue
        for g in genres:
            if isinstance(g, str) and g and g not in out:
                out.append(g)
    return out


def _unique_by_name(artists: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen: Set[str] = set()
    out: List[Dict[str, Any]] = []
    for a in artists:
        name = _name_of(a)
        if name is None or name not in seen:
            if name is not None:
                seen.add(name)
            out.append(a)
    return out
