# topgrid/domain/policies/grid_layout.py
from __future__ import annotations

from typing import Optional, Tuple

from topgrid.domain.entities.layout import LayoutSpec
from topgrid.domain.errors import InvalidParameterError


def build_layout(
    grid_size: int,
    canvas_size: int,
    *,
    show_labels: bool = True,
    max_grid_size: int = 10,
    min_cell_size: int = 1,
    max_canvas_size: Optional[int] = None,
) -> LayoutSpec:
    """
    Derive the per-request layout from a target canvas side.
    cell_size = canvas_size // grid_size, so the real canvas may be a few pixels
    smaller than the target but is always exactly cell_size * grid_size.
    """
    if isinstance(grid_size, bool) or not isinstance(grid_size, int):
        raise InvalidParameterError(f"grid_size must be an integer, got {grid_size!r}")
    if grid_size < 1:
        raise InvalidParameterError(f"grid_size must be >= 1, got {grid_size}")
    if grid_size > max_grid_size:
        raise InvalidParameterError(f"grid_size must be <= {max_grid_size}, got {grid_size}")
    if canvas_size < 1:
        raise InvalidParameterError(f"canvas_size must be > 0, got {canvas_size}")
    if max_canvas_size is not None and canvas_size > max_canvas_size:
        raise InvalidParameterError(f"canvas_size must be <= {max_canvas_size}, got {canvas_size}")

    cell_size = canvas_size // grid_size
    if cell_size < max(1, min_cell_size):
        raise InvalidParameterError(
            f"canvas_size {canvas_size} too small for a {grid_size}x{grid_size} grid "
            f"(cells would be {cell_size}px, minimum {min_cell_size}px)"
        )
    return LayoutSpec(grid_size=grid_size, cell_size=cell_size, show_labels=bool(show_labels))


def cell_position(rank: int, grid_size: int) -> Tuple[int, int]:
    """Row-major (row, col) for a 0-based rank."""
    return divmod(rank, grid_size)


def cell_origin(rank: int, layout: LayoutSpec) -> Tuple[int, int]:
    """Top-left pixel (x, y) of the cell holding `rank`."""
    row, col = cell_position(rank, layout.grid_size)
    return col * layout.cell_size, row * layout.cell_size
