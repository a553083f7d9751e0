# topgrid/services/collage/pipeline.py
from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from topgrid.common.concurrency.thread_manager import DeadlineExceeded, ThreadManager
from topgrid.common.iter import chunked
from topgrid.common.logging import get_logger
from topgrid.common.settings import get_settings
from topgrid.domain.dataclasses.reports import CollageRunReport
from topgrid.domain.entities.collage import CollageRun
from topgrid.domain.entities.layout import LayoutSpec
from topgrid.domain.entities.ranked_item import RankedItem
from topgrid.domain.entities.tile import RenderedTile
from topgrid.domain.enums import EntityType, TimeRange
from topgrid.domain.errors import AuthError, CollageTimeoutError, InvalidParameterError
from topgrid.domain.policies.grid_layout import build_layout
from topgrid.domain.ports.images import CellRendererPort, ImageFetcherPort
from topgrid.domain.ports.item_source import ItemSourcePort
from topgrid.domain.ports.storage import CollageStorePort
from topgrid.services.images.compositor import GridCompositor, new_collage_id

logger = get_logger()


class CollagePipeline:
    """
    collect items -> (fetch + render per item, fanned out) -> compose -> store.

    Only a bad credential, bad parameters, an unusable upstream answer,
    a composition failure or the request deadline abort a run; everything
    per-item degrades to placeholders.
    """

    def __init__(
        self,
        *,
        item_source: ItemSourcePort,
        fetcher_factory: Callable[..., ImageFetcherPort],
        renderer: CellRendererPort,
        compositor: Optional[GridCompositor] = None,
        store: Optional[CollageStorePort] = None,
        workers: Optional[int] = None,
        timeout_sec: Optional[float] = None,
    ) -> None:
        self.cfg = get_settings()
        self.item_source = item_source
        # built per run so each run gets its own stop event
        self.fetcher_factory = fetcher_factory
        self.renderer = renderer
        self.compositor = compositor or GridCompositor()
        self.store = store
        self.workers = int(workers or self.cfg.concurrency.render_workers)
        self.timeout_sec = float(timeout_sec or self.cfg.concurrency.request_timeout_sec)

    # --- helpers -------------------------------------------------------------

    def _validate(self, entity_type, time_range, grid_size: int, show_labels: bool, canvas_size: Optional[int]):
        try:
            et = EntityType(entity_type)
        except ValueError as e:
            raise InvalidParameterError(f"unsupported entity type: {entity_type!r}") from e
        try:
            tr = TimeRange(time_range)
        except ValueError as e:
            raise InvalidParameterError(f"unsupported time range: {time_range!r}") from e
        lc = self.cfg.layout
        layout = build_layout(
            grid_size,
            int(canvas_size or lc.canvas_size),
            show_labels=show_labels,
            max_grid_size=lc.max_grid_size,
            min_cell_size=lc.min_cell_size,
            max_canvas_size=lc.max_canvas_size,
        )
        return et, tr, layout

    def _tile_for(self, item: RankedItem, fetcher: ImageFetcherPort, layout: LayoutSpec) -> RenderedTile:
        if item.is_placeholder:
            return self.renderer.render(None, item.display_name, layout, owner_rank=item.rank, padded=True)
        resolved = fetcher.resolve(item)
        tile = self.renderer.render(resolved.data, item.display_name, layout, owner_rank=item.rank)
        if resolved.was_placeholder:
            tile.was_placeholder = True
        return tile

    # --- main ---------------------------------------------------------------

    def run(
        self,
        entity_type: EntityType | str,
        time_range: TimeRange | str,
        grid_size: int,
        show_labels: bool,
        credential: Optional[str],
        *,
        canvas_size: Optional[int] = None,
    ) -> CollageRun:
        rep = CollageRunReport()
        rep.start()

        # 1) Parameters and credential, before any network call
        et, tr, layout = self._validate(entity_type, time_range, grid_size, show_labels, canvas_size)
        if not credential or not str(credential).strip():
            raise AuthError("missing access token")
        rep.items_requested = layout.tile_count

        # 2) Items (sequential pagination; AuthError propagates from here)
        items = self.item_source.collect(credential, et, tr, layout.tile_count)
        rep.items_real = sum(1 for it in items if not it.is_placeholder)
        rep.items_padded = len(items) - rep.items_real

        # 3) Fan out fetch+render, join-all
        manager: ThreadManager[RankedItem, RenderedTile] = ThreadManager(
            name="collage-tile",
            max_workers=min(self.workers, max(1, len(items))),
            max_queue=self.cfg.concurrency.render_queue_maxsize,
        )
        fetcher = self.fetcher_factory(stop_event=manager.stop_event)
        unlabeled = replace(layout, show_labels=False)

        def _task(item: RankedItem) -> RenderedTile:
            try:
                return self._tile_for(item, fetcher, layout)
            except Exception as e:
                # any single-item failure degrades to a placeholder tile
                logger.exception("rank %d: tile render failed, using placeholder: %s", item.rank, e)
                rep.add_error(f"rank:{item.rank}", str(e))
                # plain placeholder fill, no label
                return self.renderer.render(None, item.display_name, unlabeled, owner_rank=item.rank)

        try:
            with manager:
                tiles = manager.map(_task, items, timeout=self.timeout_sec)
        except DeadlineExceeded as e:
            raise CollageTimeoutError(f"collage not ready within {self.timeout_sec:.0f}s", detail=str(e)) from e
        finally:
            close = getattr(fetcher, "close", None)
            if callable(close):
                close()

        for it, tile in zip(items, tiles):
            if it.is_placeholder:
                continue
            if tile.was_placeholder:
                rep.images_placeholder += 1
            else:
                rep.images_fetched += 1
        rep.labels_clamped = sum(1 for t in tiles if t.label_clamped)

        # 4) Compose + store
        collage = self.compositor.compose(tiles, layout, collage_id=new_collage_id())
        if self.store is not None:
            self.store.save(collage)

        rep.stop()
        logger.info(
            "collage %s: %dx%d grid, %d real / %d padded items, %d placeholder images, %.2fs",
            collage.collage_id, layout.grid_size, layout.grid_size, rep.items_real, rep.items_padded,
            rep.images_placeholder, rep.duration_sec or 0.0,
        )
        return CollageRun(
            collage=collage,
            grid_size=layout.grid_size,
            cell_size=layout.cell_size,
            label_rows=list(chunked((it.display_name for it in items), layout.grid_size)),
            report=rep,
        )
