from __future__ import annotations
from typing import Optional, Protocol
from topgrid.domain.entities.collage import Collage


class CollageStorePort(Protocol):
    """Keyed by Collage.collage_id; concurrent requests never share a slot."""
    def save(self, collage: Collage) -> str: ...
    def load(self, collage_id: str) -> Optional[Collage]: ...
    def delete(self, collage_id: str) -> bool: ...
