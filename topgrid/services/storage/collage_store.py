# topgrid/services/storage/collage_store.py
from __future__ import annotations

import os
import tempfile
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Optional

from PIL import Image

from topgrid.common.logging import get_logger
from topgrid.common.path.safe import artifact_path, resolve_root, validate_key
from topgrid.domain.entities.collage import Collage
from topgrid.domain.ports.storage import CollageStorePort

logger = get_logger()

_FORMATS = ("png", "webp")


class InMemoryCollageStore(CollageStorePort):
    """Process-local store; oldest entries are evicted past max_entries."""

    def __init__(self, max_entries: int = 32) -> None:
        self.max_entries = max(1, int(max_entries))
        self._items: "OrderedDict[str, Collage]" = OrderedDict()
        self._lock = threading.Lock()

    def save(self, collage: Collage) -> str:
        key = validate_key(collage.collage_id)
        with self._lock:
            self._items[key] = collage
            self._items.move_to_end(key)
            while len(self._items) > self.max_entries:
                evicted, _ = self._items.popitem(last=False)
                logger.debug("collage %s evicted from memory store", evicted)
        return key

    def load(self, collage_id: str) -> Optional[Collage]:
        with self._lock:
            return self._items.get(collage_id)

    def delete(self, collage_id: str) -> bool:
        with self._lock:
            return self._items.pop(collage_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class LocalDirCollageStore(CollageStorePort):
    """
    One file per collage: <root>/<collage_id>.<fmt>.
    Writes go to a temp file in the same directory, then os.replace.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = resolve_root(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _find(self, collage_id: str) -> Optional[Path]:
        try:
            validate_key(collage_id)
        except ValueError:
            return None
        for fmt in _FORMATS:
            p = artifact_path(self.root, collage_id, fmt)
            if p.is_file():
                return p
        return None

    def save(self, collage: Collage) -> str:
        out_path = artifact_path(self.root, collage.collage_id, collage.image_format)
        with tempfile.NamedTemporaryFile("wb", suffix=f".{collage.image_format}", delete=False, dir=str(self.root)) as tf:
            tmp_out = Path(tf.name)
            tf.write(collage.data)
        try:
            os.replace(tmp_out, out_path)
        finally:
            tmp_out.unlink(missing_ok=True)
        return collage.collage_id

    def load(self, collage_id: str) -> Optional[Collage]:
        p = self._find(collage_id)
        if p is None:
            return None
        data = p.read_bytes()
        with Image.open(p) as im:
            w, h = im.size
        return Collage(
            collage_id=collage_id,
            canvas_width=w,
            canvas_height=h,
            data=data,
            image_format=p.suffix.lstrip(".").lower(),
        )

    def delete(self, collage_id: str) -> bool:
        p = self._find(collage_id)
        if p is None:
            return False
        p.unlink(missing_ok=True)
        return True


def build_collage_store(cfg) -> CollageStorePort:
    if cfg.storage.backend == "local":
        return LocalDirCollageStore(cfg.collage_root)
    return InMemoryCollageStore(max_entries=cfg.storage.memory_max_entries)
