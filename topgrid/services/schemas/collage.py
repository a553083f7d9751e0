# topgrid/services/schemas/collage.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from topgrid.domain.enums import EntityType, TimeRange


class CollageRequest(BaseModel):
    entity_type: EntityType = EntityType.artists
    time_range: TimeRange = TimeRange.medium_term
    grid_size: int = Field(3, ge=1, le=50)  # actual cap is settings.layout.max_grid_size
    show_labels: bool = True
    canvas_size: Optional[int] = Field(None, ge=16, le=8192)


class CollageReportRead(BaseModel):
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    items_requested: int = 0
    items_real: int = 0
    items_padded: int = 0
    images_fetched: int = 0
    images_placeholder: int = 0
    labels_clamped: int = 0
    error_details: List[str] = Field(default_factory=list)


class CollageResponse(BaseModel):
    collage_id: str = Field(..., examples=["3f0c9a6e1b2d4c8f9e7a6b5c4d3e2f1a"])
    image_url: str  = Field(..., examples=["/api/collages/3f0c9a6e1b2d4c8f9e7a6b5c4d3e2f1a"])
    media_type: str = "image/png"
    width: int
    height: int
    grid_size: int
    cell_size: int
    label_rows: List[List[str]] = Field(default_factory=list)
    report: CollageReportRead
