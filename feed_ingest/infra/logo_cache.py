"""Best-effort publisher logo side store.

Writes may fail (read-only filesystems in serverless hosts, permissions); a
failed write is logged and otherwise ignored. A read miss is not an error:
callers go through :func:`resolve_logo` which falls back to a default image.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock

import structlog

DEFAULT_LOGO_URL = "/placeholder-image.jpg"

_logger = structlog.get_logger("feed_ingest.logo_cache")


class BaseLogoCache(ABC):
    """Key/value contract: publisher id -> logo URL."""

    @abstractmethod
    def get(self, publisher_id: str) -> str | None:
        """Return the cached logo URL or ``None``."""

    @abstractmethod
    def _write(self, publisher_id: str, logo_url: str) -> None:
        """Persist one entry; may raise."""

    def set(self, publisher_id: str, logo_url: str) -> bool:
        try:
            self._write(publisher_id, logo_url)
        except Exception as exc:  # noqa: BLE001
            _logger.warning("logo_cache_write_failed", publisher=publisher_id, error=str(exc))
            return False
        return True


class MemoryLogoCache(BaseLogoCache):
    def __init__(self) -> None:
        self._entries: dict[str, str] = {}
        self._lock = Lock()

    def get(self, publisher_id: str) -> str | None:
        with self._lock:
            return self._entries.get(publisher_id)

    def _write(self, publisher_id: str, logo_url: str) -> None:
        with self._lock:
            self._entries[publisher_id] = logo_url


class FileLogoCache(BaseLogoCache):
    """One ``<publisher_id>.json`` file per publisher holding ``{"logoUrl": ...}``."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, publisher_id: str) -> Path:
        slug = re.sub(r"[^0-9A-Za-z_-]+", "_", publisher_id.strip()) or "publisher"
        return self.directory / f"{slug}.json"

    def get(self, publisher_id: str) -> str | None:
        path = self._path(publisher_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            _logger.warning("logo_cache_read_failed", publisher=publisher_id, error=str(exc))
            return None
        value = data.get("logoUrl") if isinstance(data, dict) else None
        return value or None

    def _write(self, publisher_id: str, logo_url: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(publisher_id).write_text(
            json.dumps({"logoUrl": logo_url}, ensure_ascii=False), encoding="utf-8"
        )


def resolve_logo(
    cache: BaseLogoCache | None, publisher_id: str, default: str = DEFAULT_LOGO_URL
) -> str:
    """Return the cached logo for ``publisher_id`` or ``default``; never raises."""

    if cache is None:
        return default
    try:
        return cache.get(publisher_id) or default
    except Exception:  # noqa: BLE001
        return default


__all__ = [
    "BaseLogoCache",
    "DEFAULT_LOGO_URL",
    "FileLogoCache",
    "MemoryLogoCache",
    "resolve_logo",
]
