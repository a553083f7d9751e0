# topgrid/common/path/safe.py
from __future__ import annotations

import re
from pathlib import Path

_ARTIFACT_KEY = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")


def resolve_root(root: Path | str) -> Path:
    """Resolve an output root directory."""
    return Path(root).expanduser().resolve()


def validate_key(key: str) -> str:
    """Artifact keys are single path components made of [A-Za-z0-9_-]. Raises ValueError otherwise."""
    if not isinstance(key, str) or not _ARTIFACT_KEY.fullmatch(key):
        raise ValueError(f"invalid artifact key: {key!r}")
    return key


def artifact_path(root: Path | str, key: str, ext: str) -> Path:
    """
    Build '<root>/<key>.<ext>' and make sure the result stays inside 'root'.
    Raises ValueError on a bad key or if the path escapes the root.
    """
    r = resolve_root(root)
    name = f"{validate_key(key)}.{ext.lstrip('.').lower()}"
    p = (r / name).resolve()
    try:
        p.relative_to(r)
    except ValueError as exc:
        raise ValueError(f"path {p} escapes root {r}") from exc
    return p
