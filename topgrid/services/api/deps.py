# topgrid/services/api/deps.py
from __future__ import annotations
from functools import lru_cache
from http import HTTPStatus
from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException

from topgrid.common.settings import get_settings
from topgrid.common.strings.splitters import bearer_from_header
from topgrid.domain.ports.storage import CollageStorePort
from topgrid.services.collage.pipeline import CollagePipeline
from topgrid.services.images.cell_renderer import CellRenderer
from topgrid.services.images.fetcher import ImageFetcher
from topgrid.services.storage.collage_store import build_collage_store
from topgrid.services.upstream.item_source import ItemSourceAdapter
from topgrid.services.upstream.recommendations import RecommendationSource
from topgrid.services.upstream.spotify_client import SpotifyTopItemsClient


@lru_cache(maxsize=1)
def get_collage_store() -> CollageStorePort:
    """One store per process so POST -> GET sees the same collages."""
    return build_collage_store(get_settings())


@lru_cache(maxsize=1)
def _renderer() -> CellRenderer:
    # fonts are cached inside; safe to share across requests
    return CellRenderer()


def get_collage_pipeline(
    store: CollageStorePort = Depends(get_collage_store),
) -> Generator[CollagePipeline, None, None]:
    """
    Request-scoped pipeline. The upstream client is closed when the request ends.

    Usage in routers:
      def endpoint(pipeline: CollagePipeline = Depends(get_collage_pipeline)):
          ...
    """
    client = SpotifyTopItemsClient()
    try:
        yield CollagePipeline(
            item_source=ItemSourceAdapter(client, recommender=RecommendationSource(client)),
            fetcher_factory=ImageFetcher,
            renderer=_renderer(),
            store=store,
        )
    finally:
        client.close()


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    token = bearer_from_header(authorization)
    if not token:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token
