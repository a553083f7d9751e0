from topgrid.services.schemas.collage import (
    CollageRequest,
    CollageResponse,
    CollageReportRead,
)
__all__ = [
    "CollageRequest",
    "CollageResponse",
    "CollageReportRead",
]
