# topgrid/common/settings.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from topgrid.common.strings.splitters import csv_to_list


def _hex_to_rgb(v: str | Tuple[int, int, int] | List[int]) -> Tuple[int, int, int]:
    if isinstance(v, (tuple, list)):
        r, g, b = (int(c) for c in v)
        return (r, g, b)
    s = str(v).strip().lstrip("#")
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) != 6:
        raise ValueError(f"not a hex colour: {v!r}")
    return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))


class APIConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    prefix: str = "/api"

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["GET", "POST", "DELETE", "OPTIONS"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = False

    @field_validator("cors_allow_origins", "cors_allow_methods", "cors_allow_headers", mode="before")
    @classmethod
    def _split_csv(cls, v):
        return csv_to_list(v)


class UpstreamConfig(BaseModel):
    base_url: str = "https://api.spotify.com/v1"
    page_size: int = Field(50, ge=1, le=50)
    timeout_sec: float = 10.0
    max_retries: int = Field(2, ge=0, le=10)
    backoff_sec: float = 0.5
    max_backoff_sec: float = 10.0

    # recommended artists: genre search seeded from top artists
    saved_limit: int = Field(50, ge=1, le=50)
    search_limit: int = Field(5, ge=1, le=50)
    min_popularity: int = Field(50, ge=0, le=100)
    fallback_count: int = Field(5, ge=1)


class ImageConfig(BaseModel):
    timeout_sec: float = 8.0
    max_retries: int = Field(1, ge=0, le=5)
    max_bytes: int = 10 * 1024 * 1024
    placeholder_path: Optional[Path] = None
    placeholder_color: Tuple[int, int, int] = (204, 204, 204)

    @field_validator("placeholder_color", mode="before")
    @classmethod
    def _rgb(cls, v):
        return _hex_to_rgb(v)


class RenderConfig(BaseModel):
    output_format: str = Field("png", pattern="^(png|webp)$")
    background: Tuple[int, int, int] = (255, 255, 255)
    padding_fill: Tuple[int, int, int] = (64, 64, 64)
    label_band_rgba: Tuple[int, int, int, int] = (0, 0, 0, 160)
    label_text_rgb: Tuple[int, int, int] = (255, 255, 255)
    label_supersample: int = Field(2, ge=1, le=4)
    font_paths: List[str] = Field(default_factory=lambda: [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
    ])

    # font sizing: size = base + scale * ln(cell_size), floored at min, capped by cell fraction
    font_min_size: int = 10
    font_base: float = -28.0
    font_scale: float = 8.7
    font_max_fraction: float = 0.2
    padding_ratio: float = 0.35

    @field_validator("background", "padding_fill", "label_text_rgb", mode="before")
    @classmethod
    def _rgb(cls, v):
        return _hex_to_rgb(v)

    @field_validator("font_paths", mode="before")
    @classmethod
    def _split_csv(cls, v):
        return csv_to_list(v)


class LayoutConfig(BaseModel):
    canvas_size: int = Field(1500, ge=16, le=8192, description="Target canvas side in pixels")
    max_grid_size: int = Field(10, ge=1, le=50)
    min_cell_size: int = Field(16, ge=1)
    max_canvas_size: int = Field(8192, ge=16)


class ConcurrencyConfig(BaseModel):
    render_workers: int = Field(8, ge=1, le=64)
    render_queue_maxsize: int = 64
    request_timeout_sec: float = 60.0


class StorageConfig(BaseModel):
    backend: str = Field("memory", pattern="^(memory|local)$")
    output_root: Path = Path("var/collages")
    memory_max_entries: int = Field(32, ge=1)


class Settings(BaseSettings):
    # -------- App / Env --------
    app_name: str = "topgrid"
    app_env: str = "development"  # development|test|staging|production
    log_level: str = "INFO"

    # -------- Sub-configs --------
    api: APIConfig = APIConfig()
    upstream: UpstreamConfig = UpstreamConfig()
    images: ImageConfig = ImageConfig()
    render: RenderConfig = RenderConfig()
    layout: LayoutConfig = LayoutConfig()
    concurrency: ConcurrencyConfig = ConcurrencyConfig()
    storage: StorageConfig = StorageConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Derived paths =====
    @computed_field  # type: ignore[misc]
    @property
    def collage_root(self) -> Path:
        return Path(self.storage.output_root).expanduser()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Global settings accessor (cached). Use this everywhere you need config:
        from topgrid.common.settings import get_settings
        cfg = get_settings()
    """
    s = Settings()  # pydantic_settings will read from .env automatically
    if s.storage.backend == "local" and s.app_env in ("development", "test"):
        s.collage_root.mkdir(parents=True, exist_ok=True)
    return s
