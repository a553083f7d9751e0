from topgrid.common.settings import get_settings


def test_defaults_are_sane():
    cfg = get_settings()
    assert cfg.upstream.page_size == 50
    assert cfg.layout.max_grid_size >= 1
    assert cfg.render.output_format == "png"
    assert cfg.render.background == (255, 255, 255)
    assert cfg.storage.backend == "memory"


def test_nested_env_overrides(monkeypatch):
    monkeypatch.setenv("UPSTREAM__PAGE_SIZE", "20")
    monkeypatch.setenv("RENDER__PADDING_FILL", "\"#102030\"")  # complex fields are JSON-decoded from env
    monkeypatch.setenv("LAYOUT__CANVAS_SIZE", "900")
    get_settings.cache_clear()

    cfg = get_settings()
    assert cfg.upstream.page_size == 20
    assert cfg.render.padding_fill == (16, 32, 48)
    assert cfg.layout.canvas_size == 900


def test_local_storage_dir_created(tmp_path, monkeypatch):
    out = tmp_path / "collages"
    monkeypatch.setenv("STORAGE__BACKEND", "local")
    monkeypatch.setenv("STORAGE__OUTPUT_ROOT", str(out))
    get_settings.cache_clear()

    cfg = get_settings()
    assert cfg.collage_root == out
    assert out.is_dir()
