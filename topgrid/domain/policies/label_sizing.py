# topgrid/domain/policies/label_sizing.py
from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class LabelSizingPolicy:
    """
    Font size and padding for a cell label, as a pure function of cell size.

        font_size = min(max(min_size, round(base + scale * ln(cell_size))),
                        round(cell_size * max_fraction))
        padding   = max(1, round(font_size * padding_ratio))

    Logarithmic growth keeps big cells legible without the text taking over.
    Both terms are non-decreasing in cell_size, so the result is too.
    """
    min_size: int = 10
    base: float = -28.0
    scale: float = 8.7
    max_fraction: float = 0.2
    padding_ratio: float = 0.35

    @classmethod
    def from_settings(cls, render_cfg) -> "LabelSizingPolicy":
        return cls(
            min_size=int(render_cfg.font_min_size),
            base=float(render_cfg.font_base),
            scale=float(render_cfg.font_scale),
            max_fraction=float(render_cfg.font_max_fraction),
            padding_ratio=float(render_cfg.padding_ratio),
        )

    def font_size(self, cell_size: int) -> int:
        if cell_size < 1:
            raise ValueError(f"cell_size must be > 0, got {cell_size}")
        grown = max(self.min_size, round(self.base + self.scale * math.log(cell_size)))
        cap = round(cell_size * self.max_fraction)
        return max(1, min(grown, cap))

    def padding(self, font_size: int) -> int:
        return max(1, round(font_size * self.padding_ratio))

    def max_text_width(self, cell_size: int) -> int:
        """Widest text that still leaves `padding` on both sides of the band."""
        return max(0, cell_size - 2 * self.padding(self.font_size(cell_size)))
