# topgrid/domain/entities/ranked_item.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

NO_DATA_LABEL = "No data available"


@dataclass(frozen=True)
class ImageVariant:
    """One rendition of an upstream image. Dimensions are optional upstream."""
    url: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def area(self) -> int:
        if not self.width or not self.height:
            return 0
        return int(self.width) * int(self.height)


def pick_image_url(variants: Sequence[ImageVariant]) -> Optional[str]:
    """
    Largest variant by pixel area wins; unknown dimensions count as 0 and
    ties keep upstream order, so a list without sizes yields the first URL.
    """
    best: Optional[ImageVariant] = None
    for v in variants:
        if not v.url:
            continue
        if best is None or v.area > best.area:
            best = v
    return best.url if best else None


@dataclass(frozen=True)
class RankedItem:
    """
    One grid entry. `rank` is 0-based and fixes the row-major cell.
    Padding entries (upstream ran out) have is_placeholder=True and no image.
    """
    display_name: str
    rank: int
    image_url: Optional[str] = None
    is_placeholder: bool = False

    @classmethod
    def padding(cls, rank: int) -> "RankedItem":
        return cls(display_name=NO_DATA_LABEL, rank=rank, image_url=None, is_placeholder=True)
