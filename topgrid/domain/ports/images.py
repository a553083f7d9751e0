from __future__ import annotations
from typing import Optional, Protocol
from topgrid.domain.entities.layout import LayoutSpec
from topgrid.domain.entities.ranked_item import RankedItem
from topgrid.domain.entities.tile import RenderedTile, ResolvedImage


class ImageFetcherPort(Protocol):
    def resolve(self, item: RankedItem) -> ResolvedImage: ...


class CellRendererPort(Protocol):
    def render(
        self,
        raw: Optional[bytes],
        label: Optional[str],
        layout: LayoutSpec,
        *,
        owner_rank: int,
        padded: bool = False,
    ) -> RenderedTile: ...
