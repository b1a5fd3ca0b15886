"""In-process post store used for dry runs and tests."""

from __future__ import annotations

from dataclasses import replace
from threading import Lock
from typing import Sequence

from ..normalizer import Post, newest_first
from .base import BasePostStore


class MemoryPostStore(BasePostStore):
    def __init__(self) -> None:
        self._posts: dict[str, Post] = {}
        self._lock = Lock()

    def replace_publisher_posts(self, publisher_id: str, posts: Sequence[Post]) -> int:
        with self._lock:
            stale = [key for key, post in self._posts.items() if post.publisher_id == publisher_id]
            for key in stale:
                del self._posts[key]
            for post in posts:
                self._posts[post.id] = replace(post, publisher_name=None)
        return len(posts)

    def query_all(self) -> list[Post]:
        with self._lock:
            return newest_first(self._posts.values())

    def query_by_publisher(self, publisher_id: str) -> list[Post]:
        with self._lock:
            return newest_first(p for p in self._posts.values() if p.publisher_id == publisher_id)

    def close(self) -> None:
        return


__all__ = ["MemoryPostStore"]
