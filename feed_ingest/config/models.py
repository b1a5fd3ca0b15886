"""Pydantic models used across the feed ingestion configuration flow."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

MONGODB_URI_ENV = "MONGODB_URI"


class ScheduleType(str, Enum):
    """Scheduler modes for the recurring refresh."""

    CRON = "cron"
    INTERVAL = "interval"


class ScheduleConfig(BaseModel):
    """Configuration describing when the recurring refresh should run."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default_factory=lambda: {"minutes": 30},
        description="Cron expression, or interval seconds / IntervalTrigger kwargs.",
    )
    run_on_start: bool = True

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        return self


class Publisher(BaseModel):
    """A registered feed source. Immutable reference data."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    feed_url: str = Field(default="", validation_alias=AliasChoices("feed_url", "feedUrl", "rssUrl"))
    publication_name: str | None = Field(
        default=None, validation_alias=AliasChoices("publication_name", "publicationName")
    )
    logo_url: str | None = Field(default=None, validation_alias=AliasChoices("logo_url", "logoUrl"))

    @field_validator("id", "name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Publisher id and name cannot be empty")
        return value

    @field_validator("feed_url", mode="before")
    @classmethod
    def _coerce_url(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()


class FetchConfig(BaseModel):
    """HTTP settings for feed retrieval."""

    timeout: float = 15.0
    retry_on_fail: int = 1
    user_agent: str = "feed-ingest/0.1 (+https://github.com/feed-ingest)"

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value

    @field_validator("retry_on_fail")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("retry_on_fail must be >= 0")
        return value


class StoreConfig(BaseModel):
    """Post store backend selection."""

    backend: Literal["sqlite", "mongodb", "memory"] = "sqlite"
    path: Path = Field(default=Path("posts.db"))
    uri: str | None = None
    database: str = "feed_ingest"
    collection: str = "posts"

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _require_uri(self) -> "StoreConfig":
        if self.backend == "mongodb" and not self.uri:
            env_uri = os.environ.get(MONGODB_URI_ENV)
            if not env_uri:
                raise ValueError(f"{MONGODB_URI_ENV} environment variable is not set")
            self.uri = env_uri
        return self


class LogoCacheConfig(BaseModel):
    """Best-effort publisher logo side store."""

    backend: Literal["file", "memory"] = "file"
    directory: Path = Field(default=Path("logos"))
    default_logo_url: str = "/placeholder-image.jpg"

    @field_validator("directory", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)


class NotificationConfig(BaseModel):
    """New content notification settings."""

    preview_size: int = 5
    log_events: bool = True
    webhook_url: str | None = None
    webhook_timeout: float = 5.0

    @field_validator("preview_size")
    @classmethod
    def _positive_preview(cls, value: int) -> int:
        if value < 1:
            raise ValueError("preview_size must be >= 1")
        return value


class GlobalConfig(BaseModel):
    """Global controls shared across the refresh engine."""

    publishers_file: Path = Field(default=Path("publishers.yaml"))
    max_workers: int = 1
    persist_refresh_state: bool = True
    state_path: Path = Field(default=Path("state/refresh_state.db"))
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logo_cache: LogoCacheConfig = Field(default_factory=LogoCacheConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    @field_validator("publishers_file", "state_path", mode="before")
    @classmethod
    def _coerce_paths(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("max_workers")
    @classmethod
    def _positive_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_workers must be >= 1")
        return value

    @staticmethod
    def resolve_path(path: Path, base_dir: Path) -> Path:
        """Return ``path`` relative to the project data directory unless absolute."""

        if not path.is_absolute():
            return (base_dir / path).resolve()
        return path


__all__ = [
    "FetchConfig",
    "GlobalConfig",
    "LogoCacheConfig",
    "MONGODB_URI_ENV",
    "NotificationConfig",
    "Publisher",
    "ScheduleConfig",
    "ScheduleType",
    "StoreConfig",
]
