from __future__ import annotations

import pytest

from topgrid.domain.entities.collage import Collage
from topgrid.services.images.compositor import GridCompositor
from topgrid.domain.entities.layout import LayoutSpec
from topgrid.services.storage.collage_store import InMemoryCollageStore, LocalDirCollageStore, build_collage_store


def _collage(cid: str = "c0ffee") -> Collage:
    return GridCompositor().compose([], LayoutSpec(grid_size=2, cell_size=8), collage_id=cid)


def test_memory_store_roundtrip_and_delete():
    store = InMemoryCollageStore()
    c = _collage()
    assert store.save(c) == "c0ffee"
    assert store.load("c0ffee") is c
    assert store.delete("c0ffee") is True
    assert store.load("c0ffee") is None
    assert store.delete("c0ffee") is False


def test_memory_store_evicts_oldest():
    store = InMemoryCollageStore(max_entries=2)
    for cid in ("a1", "b2", "c3"):
        store.save(_collage(cid))
    assert store.load("a1") is None
    assert store.load("b2") is not None and store.load("c3") is not None
    assert len(store) == 2


def test_memory_store_rejects_bad_ids():
    with pytest.raises(ValueError):
        InMemoryCollageStore().save(_collage("../x"))


def test_local_store_writes_one_file_per_collage(tmp_path):
    store = LocalDirCollageStore(tmp_path)
    a, b = _collage("aaa"), _collage("bbb")
    store.save(a)
    store.save(b)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["aaa.png", "bbb.png"]
    loaded = store.load("aaa")
    assert loaded is not None
    assert loaded.data == a.data
    assert (loaded.canvas_width, loaded.canvas_height) == (16, 16)
    assert loaded.image_format == "png"


def test_local_store_overwrite_and_delete(tmp_path):
    store = LocalDirCollageStore(tmp_path)
    store.save(_collage("same"))
    store.save(_collage("same"))
    assert [p.name for p in tmp_path.iterdir()] == ["same.png"]
    assert store.delete("same") is True
    assert store.delete("same") is False
    assert list(tmp_path.iterdir()) == []


def test_local_store_unknown_or_hostile_ids(tmp_path):
    store = LocalDirCollageStore(tmp_path)
    assert store.load("missing") is None
    assert store.load("../../etc/passwd") is None
    assert store.delete("../nope") is False


def test_build_store_from_settings(tmp_path, monkeypatch):
    from topgrid.common.settings import get_settings

    assert isinstance(build_collage_store(get_settings()), InMemoryCollageStore)

    monkeypatch.setenv("STORAGE__BACKEND", "local")
    monkeypatch.setenv("STORAGE__OUTPUT_ROOT", str(tmp_path / "out"))
    get_settings.cache_clear()
    store = build_collage_store(get_settings())
    assert isinstance(store, LocalDirCollageStore)
    assert store.root == (tmp_path / "out").resolve()
