# topgrid/services/images/compositor.py
from __future__ import annotations

import io
import uuid
from typing import Optional, Sequence, Tuple

from PIL import Image

from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.entities.collage import Collage
from topgrid.domain.entities.layout import LayoutSpec
from topgrid.domain.entities.tile import RenderedTile
from topgrid.domain.errors import CompositionError
from topgrid.domain.policies.grid_layout import cell_origin

logger = get_logger()

LOSSLESS_FORMATS = ("png", "webp")


def new_collage_id() -> str:
    return uuid.uuid4().hex


def encode_image(img: Image.Image, fmt: str) -> bytes:
    fmt = fmt.lower()
    buf = io.BytesIO()
    if fmt == "png":
        img.save(buf, format="PNG", optimize=True)
    elif fmt == "webp":
        img.save(buf, format="WEBP", lossless=True, quality=100, method=6)
    else:
        raise ValueError(f"Unsupported format: {fmt}")
    return buf.getvalue()


class GridCompositor:
    """
    Pastes tiles onto a white canvas at row-major positions and encodes it.
    A short tile sequence leaves the remaining cells as background.
    """

    def __init__(
        self,
        *,
        background: Optional[Tuple[int, int, int]] = None,
        image_format: Optional[str] = None,
    ) -> None:
        cfg = get_settings().render
        self.background = tuple(background or cfg.background)
        self.image_format = (image_format or cfg.output_format).lower()
        if self.image_format not in LOSSLESS_FORMATS:
            raise ValueError(f"collage format must be one of {LOSSLESS_FORMATS}, got {self.image_format!r}")

    def compose(
        self,
        tiles: Sequence[RenderedTile],
        layout: LayoutSpec,
        *,
        collage_id: Optional[str] = None,
    ) -> Collage:
        side = layout.canvas_size
        try:
            canvas = Image.new("RGB", (side, side), self.background)
        except (MemoryError, ValueError) as e:
            raise CompositionError(f"cannot allocate {side}x{side} canvas", detail=str(e)) from e

        placed = 0
        for tile in tiles:
            if not 0 <= tile.owner_rank < layout.tile_count:
                logger.warning("tile rank %d outside %dx%d grid; skipped", tile.owner_rank, layout.grid_size, layout.grid_size)
                continue
            if tile.image.size != (layout.cell_size, layout.cell_size):
                logger.warning(
                    "tile rank %d is %sx%s, expected %d; skipped",
                    tile.owner_rank, tile.image.width, tile.image.height, layout.cell_size,
                )
                continue
            canvas.paste(tile.image, cell_origin(tile.owner_rank, layout))
            placed += 1
        if placed < layout.tile_count:
            logger.warning("composited %d of %d tiles; remaining cells left as background", placed, layout.tile_count)

        try:
            data = encode_image(canvas, self.image_format)
        except (MemoryError, OSError, ValueError) as e:
            raise CompositionError(f"failed to encode collage as {self.image_format}", detail=str(e)) from e

        return Collage(
            collage_id=collage_id or new_collage_id(),
            canvas_width=side,
            canvas_height=side,
            data=data,
            image_format=self.image_format,
        )
