# topgrid/services/api/routers/collages.py
from __future__ import annotations

from http import HTTPStatus
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path, Response

from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.entities.collage import Collage
from topgrid.domain.errors import (
    AuthError,
    CollageError,
    CollageTimeoutError,
    CompositionError,
    InvalidParameterError,
    UpstreamError,
)
from topgrid.domain.ports.storage import CollageStorePort
from topgrid.services.api.deps import bearer_token, get_collage_pipeline, get_collage_store
from topgrid.services.collage.pipeline import CollagePipeline
from topgrid.services.mappers.collage import to_collage_response
from topgrid.services.schemas.collage import CollageRequest, CollageResponse

cfg = get_settings()
router = APIRouter(prefix=f"{cfg.api.prefix}/collages", tags=["collages"])
logger = get_logger()

_STATUS_BY_ERROR = (
    (AuthError, HTTPStatus.UNAUTHORIZED),
    (InvalidParameterError, HTTPStatus.BAD_REQUEST),
    (UpstreamError, HTTPStatus.BAD_GATEWAY),
    (CollageTimeoutError, HTTPStatus.GATEWAY_TIMEOUT),
    (CompositionError, HTTPStatus.INTERNAL_SERVER_ERROR),
)


# ---- helpers ----

def _raise_http(exc: CollageError) -> NoReturn:
    status = next((s for cls, s in _STATUS_BY_ERROR if isinstance(exc, cls)), HTTPStatus.INTERNAL_SERVER_ERROR)
    if status >= 500:
        logger.error("collage request failed (%s): %s %s", exc.category, exc.message, exc.detail or "")
    headers = {"WWW-Authenticate": "Bearer"} if status == HTTPStatus.UNAUTHORIZED else None
    raise HTTPException(
        status_code=status,
        detail={"category": exc.category, "message": exc.message},
        headers=headers,
    ) from exc


def _collage_or_404(store: CollageStorePort, collage_id: str) -> Collage:
    obj = store.load(collage_id)
    if not obj:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Collage not found")
    return obj


# ---- endpoints ----

@router.post("", response_model=CollageResponse, status_code=HTTPStatus.CREATED)
def create_collage(
    req: CollageRequest,
    token: str = Depends(bearer_token),
    pipeline: CollagePipeline = Depends(get_collage_pipeline),
) -> CollageResponse:
    try:
        run = pipeline.run(
            req.entity_type,
            req.time_range,
            req.grid_size,
            req.show_labels,
            token,
            canvas_size=req.canvas_size,
        )
    except CollageError as e:
        _raise_http(e)
    return to_collage_response(run, image_url=f"{router.prefix}/{run.collage.collage_id}")


@router.get("/{collage_id}", response_class=Response)
def get_collage_image(
    collage_id: str = Path(..., pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$"),
    store: CollageStorePort = Depends(get_collage_store),
) -> Response:
    c = _collage_or_404(store, collage_id)
    return Response(content=c.data, media_type=c.media_type, headers={"Cache-Control": "no-store"})


@router.delete("/{collage_id}", status_code=HTTPStatus.NO_CONTENT, response_class=Response)
def delete_collage(
    collage_id: str = Path(..., pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$"),
    store: CollageStorePort = Depends(get_collage_store),
) -> Response:
    if not store.delete(collage_id):
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Collage not found")
    return Response(status_code=HTTPStatus.NO_CONTENT)
