# topgrid/services/images/cell_renderer.py
from __future__ import annotations

import io
import math
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.entities.layout import LayoutSpec
from topgrid.domain.entities.tile import RenderedTile
from topgrid.domain.policies.label_sizing import LabelSizingPolicy
from topgrid.domain.ports.images import CellRendererPort
from topgrid.services.images.fonts import FontProvider

logger = get_logger()

ELLIPSIS = "..."
LANCZOS = Image.Resampling.LANCZOS

# shared 1x1 surface used only for text measurement
_MEASURE = ImageDraw.Draw(Image.new("L", (1, 1)))


def measure_text(text: str, font: ImageFont.FreeTypeFont) -> float:
    return _MEASURE.textlength(text, font=font)


def fit_label(text: str, font: ImageFont.FreeTypeFont, max_width: float) -> Tuple[str, bool]:
    """
    Overflow policy: ellipsis truncation.
    Returns (text_to_draw, clamped). Characters are dropped from the end and
    "..." appended until the measured width fits; if not even "..." fits,
    the label is dropped entirely ("", True).
    """
    if measure_text(text, font) <= max_width:
        return text, False
    if measure_text(ELLIPSIS, font) > max_width:
        return "", True
    cut = len(text)
    while cut > 0:
        cut -= 1
        candidate = text[:cut].rstrip() + ELLIPSIS
        if measure_text(candidate, font) <= max_width:
            return candidate, True
    return ELLIPSIS, True


def cover_fit(im: Image.Image, cell_size: int) -> Image.Image:
    """Scale so the short side matches the cell, centre-crop the rest. Never stretches."""
    return ImageOps.fit(im, (cell_size, cell_size), method=LANCZOS, centering=(0.5, 0.5))


def _to_rgb(im: Image.Image, background: Tuple[int, int, int]) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    if im.mode in ("RGBA", "LA") or (im.mode == "P" and "transparency" in im.info):
        rgba = im.convert("RGBA")
        flat = Image.new("RGB", rgba.size, background)
        flat.paste(rgba, mask=rgba.getchannel("A"))
        return flat
    return im.convert("RGB")


class CellRenderer(CellRendererPort):
    """
    Turns raw image bytes into one square tile with an optional label band
    burned in along the bottom edge.
    """

    def __init__(
        self,
        policy: Optional[LabelSizingPolicy] = None,
        fonts: Optional[FontProvider] = None,
        *,
        supersample: Optional[int] = None,
    ) -> None:
        cfg = get_settings().render
        self.policy = policy or LabelSizingPolicy.from_settings(cfg)
        self.fonts = fonts or FontProvider(cfg.font_paths)
        self.supersample = max(1, int(supersample or cfg.label_supersample))
        self.band_rgba = tuple(cfg.label_band_rgba)
        self.text_rgb = tuple(cfg.label_text_rgb)
        self.padding_fill = tuple(cfg.padding_fill)
        self.placeholder_fill = tuple(get_settings().images.placeholder_color)
        self.background = tuple(cfg.background)

    def render(
        self,
        raw: Optional[bytes],
        label: Optional[str],
        layout: LayoutSpec,
        *,
        owner_rank: int,
        padded: bool = False,
    ) -> RenderedTile:
        cell = layout.cell_size
        was_placeholder = padded
        if padded:
            tile = Image.new("RGB", (cell, cell), self.padding_fill)
        else:
            try:
                tile = self._decode_and_fit(raw, cell)
            except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
                logger.warning("rank %d: undecodable image (%s); using placeholder fill", owner_rank, e)
                tile = Image.new("RGB", (cell, cell), self.placeholder_fill)
                was_placeholder = True

        drawn: Optional[str] = None
        clamped = False
        text = (label or "").strip()
        if layout.show_labels and text:
            drawn, clamped = self._burn_label(tile, text, cell)
            if clamped:
                logger.debug("rank %d: label %r clamped to %r", owner_rank, text, drawn)

        return RenderedTile(
            owner_rank=owner_rank,
            image=tile,
            label=drawn or None,
            label_clamped=clamped,
            was_placeholder=was_placeholder,
        )

    # ---- internals ----
    def _decode_and_fit(self, raw: Optional[bytes], cell: int) -> Image.Image:
        if not raw:
            raise ValueError("no image bytes")
        with Image.open(io.BytesIO(raw)) as src:
            src.load()
            rgb = _to_rgb(src, self.background)
        return cover_fit(rgb, cell)

    def _burn_label(self, tile: Image.Image, text: str, cell: int) -> Tuple[str, bool]:
        """Draw the label band onto `tile` in place. Returns (drawn_text, clamped)."""
        size = self.policy.font_size(cell)
        pad = self.policy.padding(size)
        font = self.fonts.get(size)

        # clamp at base scale so the supersampled band downsizes to exactly this geometry
        fitted, clamped = fit_label(text, font, cell - 2 * pad)
        if not fitted:
            return "", clamped

        ascent, descent = font.getmetrics()
        band_w = min(cell, math.ceil(measure_text(fitted, font)) + 2 * pad)
        band_h = min(cell, ascent + descent + 2 * pad)

        s = self.supersample
        band = Image.new("RGBA", (band_w * s, band_h * s), self.band_rgba)
        ImageDraw.Draw(band).text((pad * s, pad * s), fitted, font=self.fonts.get(size * s), fill=self.text_rgb)
        if s > 1:
            band = band.resize((band_w, band_h), LANCZOS)

        rgba = tile.convert("RGBA")
        rgba.alpha_composite(band, dest=(0, cell - band_h))
        tile.paste(rgba.convert("RGB"))
        return fitted, clamped
