# topgrid/services/mappers/collage.py
from __future__ import annotations

from topgrid.domain.dataclasses.reports import CollageRunReport
from topgrid.domain.entities.collage import CollageRun
from topgrid.services.schemas.collage import CollageReportRead, CollageResponse


def to_report_read(rep: CollageRunReport) -> CollageReportRead:
    return CollageReportRead(
        started_at=rep.started_at,
        finished_at=rep.finished_at,
        items_requested=rep.items_requested,
        items_real=rep.items_real,
        items_padded=rep.items_padded,
        images_fetched=rep.images_fetched,
        images_placeholder=rep.images_placeholder,
        labels_clamped=rep.labels_clamped,
        error_details=[f"{subject}: {msg}" for subject, msg in rep.error_details],
    )


def to_collage_response(run: CollageRun, *, image_url: str) -> CollageResponse:
    c = run.collage
    return CollageResponse(
        collage_id=c.collage_id,
        image_url=image_url,
        media_type=c.media_type,
        width=c.canvas_width,
        height=c.canvas_height,
        grid_size=run.grid_size,
        cell_size=run.cell_size,
        label_rows=run.label_rows,
        report=to_report_read(run.report),
    )
