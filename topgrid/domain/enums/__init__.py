from topgrid.domain.enums.entity_type import EntityType
from topgrid.domain.enums.time_range import TimeRange
__all__ = [
    "EntityType",
    "TimeRange",
]
