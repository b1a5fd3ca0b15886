"""Storage abstractions for posts and refresh state."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Dict


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._locks: Dict[Path, Lock] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if path not in self._connections:
                conn = sqlite3.connect(path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._connections[path] = conn
                self._locks[path] = Lock()
                self._ensure_schema(conn)
            return self._connections[path]

    def lock_for(self, path: Path) -> Lock:
        """Return the lock guarding the shared connection for ``path``."""

        self.connect(path)
        return self._locks[path]

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS posts (
                id TEXT PRIMARY KEY,
                publisher_id TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                subtitle TEXT NOT NULL DEFAULT '',
                author TEXT NOT NULL DEFAULT '',
                publication_name TEXT,
                publish_date TEXT NOT NULL,
                link TEXT NOT NULL DEFAULT '',
                cover_image TEXT,
                logo_url TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_posts_publisher_date
                ON posts(publisher_id, publish_date);
            CREATE INDEX IF NOT EXISTS idx_posts_date ON posts(publish_date);
            CREATE TABLE IF NOT EXISTS refresh_state (
                publisher_id TEXT PRIMARY KEY,
                latest_seen TEXT NOT NULL,
                updated_at TEXT
            );
            """
        )
        conn.commit()

    def reset(self, path: Path) -> None:
        with self._lock:
            if path in self._connections:
                self._connections[path].close()
                del self._connections[path]
                del self._locks[path]
        if path.exists():
            path.unlink()

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()
            self._locks.clear()


__all__ = ["SQLiteManager"]
