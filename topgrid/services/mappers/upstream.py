# topgrid/services/mappers/upstream.py
from __future__ import annotations

from typing import Any, Dict, List

from topgrid.domain.entities.ranked_item import ImageVariant, RankedItem, pick_image_url
from topgrid.domain.enums import EntityType

UNKNOWN_NAME = "Unknown"


def to_image_variants(raw_images: Any) -> List[ImageVariant]:
    out: List[ImageVariant] = []
    if not isinstance(raw_images, list):
        return out
    for img in raw_images:
        if not isinstance(img, dict):
            continue
        url = img.get("url")
        if not url or not isinstance(url, str):
            continue
        out.append(ImageVariant(url=url, width=_int_or_none(img.get("width")), height=_int_or_none(img.get("height"))))
    return out


def to_ranked_item(raw: Dict[str, Any], rank: int, entity_type: EntityType) -> RankedItem:
    """Artists carry `images`; tracks carry them on `album.images`."""
    if entity_type == EntityType.tracks:
        album = raw.get("album") or {}
        images = album.get("images") if isinstance(album, dict) else None
    else:
        images = raw.get("images")
    name = raw.get("name")
    name = name.strip() if isinstance(name, str) else ""
    return RankedItem(
        display_name=name or UNKNOWN_NAME,
        rank=rank,
        image_url=pick_image_url(to_image_variants(images)),
    )


def _int_or_none(x: Any):
    try:
        if x is None:
            return None
        return int(x)
    except (TypeError, ValueError):
        return None
