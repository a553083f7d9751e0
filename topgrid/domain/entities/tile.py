# topgrid/domain/entities/tile.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PIL import Image


@dataclass(frozen=True)
class ResolvedImage:
    """Raw encoded bytes for one item; was_placeholder marks a substituted image."""
    owner_rank: int
    data: bytes
    was_placeholder: bool = False


@dataclass
class RenderedTile:
    """
    A finished cell: RGB, cell_size x cell_size, label already burned in.
    `label` is the text actually drawn (after overflow clamping), None if unlabeled.
    """
    owner_rank: int
    image: Image.Image
    label: Optional[str] = None
    label_clamped: bool = False
    was_placeholder: bool = False

    @property
    def size(self) -> int:
        return self.image.width
