# tests/services/conftest.py
from __future__ import annotations
import pytest
from starlette.testclient import TestClient

from topgrid.services.api.app import create_app
from topgrid.services.api.deps import get_collage_pipeline, get_collage_store
from topgrid.services.collage.pipeline import CollagePipeline
from topgrid.services.images.cell_renderer import CellRenderer
from topgrid.services.images.fetcher import ImageFetcher
from topgrid.services.images.fonts import FontProvider
from topgrid.services.storage.collage_store import InMemoryCollageStore
from topgrid.services.upstream.item_source import ItemSourceAdapter
from topgrid.services.upstream.spotify_client import SpotifyTopItemsClient


@pytest.fixture()
def api_env(fake_spotify, fake_image_host, artists, make_png):
    """
    A TestClient whose pipeline/store dependencies are overridden to talk to
    in-process fakes: FakeSpotify for the listing, FakeImageHost for images.
    Yields (client, spotify, image_host, store); tweak spotify.items per test.
    """
    spotify = fake_spotify(artists(9))
    host = fake_image_host(make_png(color=(30, 160, 90)))
    store = InMemoryCollageStore()

    def _pipeline():
        yield CollagePipeline(
            item_source=ItemSourceAdapter(SpotifyTopItemsClient(spotify.client()), sleep=lambda s: None),
            fetcher_factory=lambda stop_event=None: ImageFetcher(host.client(), stop_event=stop_event),
            renderer=CellRenderer(fonts=FontProvider([])),
            store=store,
            workers=4,
        )

    app = create_app()
    app.dependency_overrides[get_collage_pipeline] = _pipeline
    app.dependency_overrides[get_collage_store] = lambda: store

    try:
        with TestClient(app) as client:
            yield client, spotify, host, store
    finally:
        app.dependency_overrides.clear()
