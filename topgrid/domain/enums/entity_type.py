from __future__ import annotations
from enum import StrEnum

class EntityType(StrEnum):
    artists = "artists"
    tracks = "tracks"
    # artists found by genre search seeded from the listener's top artists
    recommended = "recommended"
