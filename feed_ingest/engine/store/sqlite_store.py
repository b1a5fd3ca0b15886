"""Persist posts to a SQLite table."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Sequence

from ...infra.storage import SQLiteManager
from ..normalizer import Post, format_timestamp, parse_publish_date
from .base import BasePostStore, StoreError

_COLUMNS = (
    "id",
    "publisher_id",
    "title",
    "subtitle",
    "author",
    "publication_name",
    "publish_date",
    "link",
    "cover_image",
    "logo_url",
)


class SQLitePostStore(BasePostStore):
    """One row per post; ``id`` is the primary key."""

    def __init__(self, manager: SQLiteManager, path: Path) -> None:
        self.manager = manager
        self.path = path
        self.conn = self.manager.connect(path)
        self._lock = self.manager.lock_for(path)

    def replace_publisher_posts(self, publisher_id: str, posts: Sequence[Post]) -> int:
        rows = [self._to_row(post) for post in posts]
        placeholders = ", ".join("?" for _ in _COLUMNS)
        try:
            with self._lock, self.conn:
                self.conn.execute("DELETE FROM posts WHERE publisher_id = ?", (publisher_id,))
                self.conn.executemany(
                    f"INSERT OR REPLACE INTO posts({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    rows,
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to save posts for {publisher_id}: {exc}") from exc
        return len(rows)

    def query_all(self) -> list[Post]:
        return self._select("SELECT * FROM posts ORDER BY publish_date DESC, id ASC", ())

    def query_by_publisher(self, publisher_id: str) -> list[Post]:
        return self._select(
            "SELECT * FROM posts WHERE publisher_id = ? ORDER BY publish_date DESC, id ASC",
            (publisher_id,),
        )

    def count(self) -> int:
        try:
            with self._lock:
                return self.conn.execute("SELECT count(*) FROM posts").fetchone()[0]
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to count posts: {exc}") from exc

    def close(self) -> None:
        # the connection belongs to the SQLiteManager
        return

    def _select(self, sql: str, params: tuple) -> list[Post]:
        try:
            with self._lock:
                rows = self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read posts: {exc}") from exc
        return [self._from_row(row) for row in rows]

    @staticmethod
    def _to_row(post: Post) -> tuple:
        return (
            post.id,
            post.publisher_id,
            post.title,
            post.subtitle,
            post.author,
            post.publication_name,
            format_timestamp(post.publish_date),
            post.link,
            post.cover_image,
            post.logo_url,
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Post:
        return Post(
            id=row["id"],
            title=row["title"],
            subtitle=row["subtitle"],
            author=row["author"],
            publication_name=row["publication_name"],
            publish_date=parse_publish_date(row["publish_date"]),
            link=row["link"],
            publisher_id=row["publisher_id"],
            cover_image=row["cover_image"],
            logo_url=row["logo_url"],
        )


__all__ = ["SQLitePostStore"]
