import pytest
from pathlib import Path
from topgrid.common.path.safe import artifact_path, resolve_root, validate_key


def test_resolve_root(tmp_path):
    p = resolve_root(tmp_path)
    assert isinstance(p, Path)
    assert p.exists()


def test_artifact_path_inside_root(tmp_path):
    out = artifact_path(tmp_path, "abc123", ".PNG")
    assert out == tmp_path.resolve() / "abc123.png"


@pytest.mark.parametrize("key", ["../evil", "a/b", "", ".hidden", "x" * 200, "with space"])
def test_bad_keys_rejected(tmp_path, key):
    with pytest.raises(ValueError):
        artifact_path(tmp_path, key, "png")


def test_validate_key_accepts_uuid_hex():
    assert validate_key("3f0c9a6e1b2d4c8f9e7a6b5c4d3e2f1a") == "3f0c9a6e1b2d4c8f9e7a6b5c4d3e2f1a"
