# topgrid/domain/entities/collage.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from topgrid.domain.dataclasses.reports import CollageRunReport


@dataclass(frozen=True)
class Collage:
    """Encoded grid image keyed by a request-scoped id."""
    collage_id: str
    canvas_width: int
    canvas_height: int
    data: bytes = field(repr=False)
    image_format: str = "png"

    @property
    def media_type(self) -> str:
        return f"image/{self.image_format}"


@dataclass
class CollageRun:
    """What the orchestrator hands to the presentation layer."""
    collage: Collage
    grid_size: int
    cell_size: int
    label_rows: List[List[str]] = field(default_factory=list)
    report: CollageRunReport = field(default_factory=CollageRunReport)
