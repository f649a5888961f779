"""Pydantic models for config validation.

``Config.validated()`` returns a typed, validated ``PanelSearchConfig``
instance. Dict-based access on ``Config`` keeps working unchanged.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    cache_dir: Path | None = None
    log_dir: Path | None = None

    @field_validator("data_dir", "cache_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class RemoteConfig(BaseModel):
    """Ordered remote locations for each artifact, tried first to last."""

    index_urls: list[str]
    archive_urls: list[str]
    probe_url: str | None = None
    timeout: float = 30.0

    @field_validator("index_urls", "archive_urls", mode="before")
    @classmethod
    def _split_csv(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [u.strip() for u in v.split(",") if u.strip()]
        return v

    @field_validator("index_urls", "archive_urls")
    @classmethod
    def _non_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one remote location is required")
        return v


class CacheConfig(BaseModel):
    """Local cache behaviour."""

    enabled: bool = True
    max_age_hours: float = 24

    @property
    def max_age(self) -> timedelta:
        return timedelta(hours=self.max_age_hours)


class SearchConfig(BaseModel):
    """Query defaults."""

    max_results: int = 50
    debounce_ms: int = 150

    @field_validator("max_results", "debounce_ms")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


class AssetsConfig(BaseModel):
    """Display-asset URL resolution."""

    url_template: str


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    file: str | None = None


class PanelSearchConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.panelsearch-data"))
    remote: RemoteConfig
    cache: CacheConfig = CacheConfig()
    search: SearchConfig = SearchConfig()
    assets: AssetsConfig
    logging: LoggingConfig = LoggingConfig()
