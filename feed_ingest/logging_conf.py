"""structlog front-end over stdlib handlers writing JSON lines.

Layout under the log directory::

    ingest.log                everything at INFO and above
    error.log                 ERROR and above
    publishers/<id>.log       one file per publisher, fed by publisher_logger()
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

import structlog

LOGGER_NAME = "feed_ingest"
JSON_FORMATTER = "pythonjsonlogger.jsonlogger.JsonFormatter"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False
_configure_lock = Lock()


def log_dir() -> Path:
    env_root = os.environ.get("FEED_INGEST_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def main_log_path() -> Path:
    return log_dir() / "ingest.log"


def publisher_log_path(publisher_id: str) -> Path:
    return log_dir() / "publishers" / f"{publisher_id}.log"


def _file_handler(path: Path, level: str) -> dict[str, Any]:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "json",
    }


def _dict_config(level: str, directory: Path) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": JSON_FORMATTER, "fmt": LOG_FORMAT}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "ingest": _file_handler(directory / "ingest.log", "INFO"),
            "errors": _file_handler(directory / "error.log", "ERROR"),
        },
        "loggers": {
            LOGGER_NAME: {
                "handlers": ["console", "ingest", "errors"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install handlers on first call; later calls just hand back the app logger."""

    global _configured
    with _configure_lock:
        if not _configured:
            directory = log_dir()
            (directory / "publishers").mkdir(parents=True, exist_ok=True)
            logging.config.dictConfig(_dict_config("DEBUG" if verbose else "INFO", directory))
            structlog.configure(
                processors=[
                    structlog.contextvars.merge_contextvars,
                    structlog.stdlib.add_log_level,
                    structlog.processors.TimeStamper(fmt="iso", utc=True),
                    structlog.processors.StackInfoRenderer(),
                    structlog.processors.format_exc_info,
                    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
                ],
                logger_factory=structlog.stdlib.LoggerFactory(),
                cache_logger_on_first_use=True,
            )
            _configured = True
    return structlog.get_logger(LOGGER_NAME)


def publisher_logger(publisher_id: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to ``publisher=<id>`` that also writes to the publisher's own file."""

    configure_logging(verbose)
    path = publisher_log_path(publisher_id)
    name = f"{LOGGER_NAME}.publisher.{publisher_id}"
    stdlib_logger = logging.getLogger(name)
    attached = {
        getattr(handler, "baseFilename", None) for handler in stdlib_logger.handlers
    }
    if str(path) not in attached:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        parent_handlers = logging.getLogger(LOGGER_NAME).handlers
        if parent_handlers:
            handler.setFormatter(parent_handlers[0].formatter)
        stdlib_logger.addHandler(handler)
    return structlog.get_logger(name).bind(publisher=publisher_id)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return stream.readlines()[-line_count:]


def available_publisher_logs() -> Iterable[Path]:
    directory = log_dir() / "publishers"
    if not directory.exists():
        return []
    return sorted(directory.glob("*.log"))


__all__ = [
    "available_publisher_logs",
    "configure_logging",
    "log_dir",
    "main_log_path",
    "publisher_log_path",
    "publisher_logger",
    "tail_log",
]
