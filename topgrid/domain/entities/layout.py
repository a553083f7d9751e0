# topgrid/domain/entities/layout.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LayoutSpec:
    grid_size: int
    cell_size: int
    show_labels: bool = True

    def __post_init__(self) -> None:
        if self.grid_size < 1:
            raise ValueError(f"grid_size must be >= 1, got {self.grid_size}")
        if self.cell_size < 1:
            raise ValueError(f"cell_size must be > 0, got {self.cell_size}")

    @property
    def tile_count(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def canvas_size(self) -> int:
        return self.cell_size * self.grid_size
