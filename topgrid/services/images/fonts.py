# topgrid/services/images/fonts.py
from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Optional, Sequence

from PIL import ImageFont

from topgrid.common.logging import get_logger

logger = get_logger()


class FontProvider:
    """
    First readable TrueType file from `font_paths`, else Pillow's bundled
    default font (scalable since Pillow 10.1). Fonts are cached per size.
    """

    def __init__(self, font_paths: Sequence[str | Path] = ()) -> None:
        self._font_paths = [Path(p) for p in font_paths]
        self._path: Optional[Path] = None
        self._resolved = False
        self._cache: Dict[int, ImageFont.FreeTypeFont] = {}
        self._lock = threading.Lock()

    def _resolve_path(self) -> Optional[Path]:
        if not self._resolved:
            for p in self._font_paths:
                if p.is_file():
                    try:
                        ImageFont.truetype(str(p), 12)
                    except OSError:
                        continue
                    self._path = p
                    logger.debug("label font: %s", p)
                    break
            else:
                logger.info("no TrueType font found in %s; using Pillow default font", [str(p) for p in self._font_paths])
            self._resolved = True
        return self._path

    def get(self, size: int) -> ImageFont.FreeTypeFont:
        size = max(1, int(size))
        with self._lock:
            font = self._cache.get(size)
            if font is None:
                path = self._resolve_path()
                font = ImageFont.truetype(str(path), size) if path else ImageFont.load_default(size=size)
                self._cache[size] = font
            return font
