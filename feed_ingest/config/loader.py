"""Configuration loading helpers for the feed ingestion engine."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import GlobalConfig, Publisher

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "global_config.yaml"
HOME_ENV = "FEED_INGEST_HOME"


class ConfigurationError(RuntimeError):
    """Raised at startup when configuration cannot be used."""


def _read_file(path: Path) -> object:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME

    def resolve(self, path: Path) -> Path:
        return GlobalConfig.resolve_path(path, self.data_dir)


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None
        self._publishers_cache: list[Publisher] | None = None

    # ------------------------------------------------------------------
    # Global configuration helpers
    # ------------------------------------------------------------------
    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            payload = _read_file(path) or {}
            if not isinstance(payload, dict):
                raise ConfigurationError(f"Configuration file must contain a mapping: {path}")
            global_cfg = GlobalConfig.model_validate(payload)
        else:
            global_cfg = GlobalConfig()
            self.save_global_config(global_cfg)
        self._global_cache = global_cfg
        return global_cfg

    def save_global_config(self, config: GlobalConfig) -> None:
        path = self.locator.global_config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._global_cache = config

    # ------------------------------------------------------------------
    # Publisher registry
    # ------------------------------------------------------------------
    def publishers_path(self) -> Path:
        return self.locator.resolve(self.load_global_config().publishers_file)

    def load_publishers(self) -> list[Publisher]:
        """Load the publisher registry once; later calls return the cached list.

        The file holds either a list of publisher mappings or a mapping with a
        ``publishers`` list.
        """

        if self._publishers_cache is not None:
            return list(self._publishers_cache)
        path = self.publishers_path()
        if not path.exists():
            raise FileNotFoundError(f"Publisher registry not found: {path}")
        if path.suffix not in CONFIG_EXTENSIONS:
            raise ConfigurationError(f"Unsupported registry format: {path.suffix}")
        payload = _read_file(path)
        if isinstance(payload, dict):
            payload = payload.get("publishers")
        if not isinstance(payload, list):
            raise ConfigurationError(f"Publisher registry must contain a list: {path}")
        try:
            publishers = [Publisher.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid publisher registry {path}: {exc}") from exc
        seen: set[str] = set()
        for publisher in publishers:
            if publisher.id in seen:
                raise ConfigurationError(f"Duplicate publisher id in registry: {publisher.id}")
            seen.add(publisher.id)
        self._publishers_cache = publishers
        return list(publishers)

    def save_publishers(self, publishers: list[Publisher]) -> Path:
        path = self.publishers_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        _write_file(path, {"publishers": [p.model_dump(mode="json") for p in publishers]})
        self._publishers_cache = None
        return path

    def find_publisher(self, publisher_id: str) -> Publisher | None:
        return next((p for p in self.load_publishers() if p.id == publisher_id), None)


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigLocator",
    "ConfigRepository",
    "ConfigurationError",
    "HOME_ENV",
]
