"""Per-publisher new-content detection backed by a latest-seen timestamp map."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Dict, Sequence

from ..infra.storage import SQLiteManager
from .normalizer import MIN_TIMESTAMP, Post, format_timestamp, parse_publish_date


class RefreshState:
    """Latest seen publish date per publisher, held in memory.

    Absent publishers read as :data:`MIN_TIMESTAMP`. Values only move forward.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, datetime] = {}
        self._key_locks: Dict[str, Lock] = {}
        self._lock = Lock()

    def lock_for(self, publisher_id: str) -> Lock:
        with self._lock:
            if publisher_id not in self._key_locks:
                self._key_locks[publisher_id] = Lock()
            return self._key_locks[publisher_id]

    def get(self, publisher_id: str) -> datetime:
        with self._lock:
            return self._latest.get(publisher_id, MIN_TIMESTAMP)

    def advance(self, publisher_id: str, latest: datetime) -> bool:
        """Record ``latest`` if it is later than the stored value."""

        with self._lock:
            current = self._latest.get(publisher_id, MIN_TIMESTAMP)
            if latest <= current:
                return False
            self._latest[publisher_id] = latest
        self._persist(publisher_id, latest)
        return True

    def snapshot(self) -> dict[str, datetime]:
        with self._lock:
            return dict(self._latest)

    def _persist(self, publisher_id: str, latest: datetime) -> None:
        return


class SQLiteRefreshState(RefreshState):
    """RefreshState mirrored into the ``refresh_state`` table so restarts keep it."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        super().__init__()
        self.manager = manager
        self.db_path = db_path
        self._conn = self.manager.connect(db_path)
        self._conn_lock = self.manager.lock_for(db_path)
        with self._conn_lock:
            rows = self._conn.execute(
                "SELECT publisher_id, latest_seen FROM refresh_state"
            ).fetchall()
        for row in rows:
            self._latest[row["publisher_id"]] = parse_publish_date(row["latest_seen"])

    def _persist(self, publisher_id: str, latest: datetime) -> None:
        with self._conn_lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO refresh_state(publisher_id, latest_seen, updated_at) VALUES (?, ?, ?)",
                (
                    publisher_id,
                    format_timestamp(latest),
                    datetime.now(timezone.utc).isoformat(timespec="seconds"),
                ),
            )
            self._conn.commit()


@dataclass(slots=True)
class DetectionResult:
    is_new_content: bool
    new_posts: list[Post] = field(default_factory=list)
    latest: datetime | None = None
    previous: datetime = MIN_TIMESTAMP


class ChangeDetector:
    """Compare a fresh post list with the publisher's latest seen timestamp.

    Posts are expected newest-first, in feed-document order; the first post's
    date is taken as the feed's latest. Equal timestamps are not new.
    """

    def __init__(self, state: RefreshState | None = None) -> None:
        self.state = state or RefreshState()

    def evaluate(self, publisher_id: str, posts: Sequence[Post]) -> DetectionResult:
        previous = self.state.get(publisher_id)
        if not posts:
            return DetectionResult(is_new_content=False, previous=previous)
        latest = posts[0].publish_date
        new_posts = [post for post in posts if post.publish_date > previous]
        return DetectionResult(
            is_new_content=latest > previous,
            new_posts=new_posts,
            latest=latest,
            previous=previous,
        )

    def commit(self, publisher_id: str, result: DetectionResult) -> bool:
        if not result.is_new_content or result.latest is None:
            return False
        return self.state.advance(publisher_id, result.latest)

    def detect_new(self, publisher_id: str, posts: Sequence[Post]) -> DetectionResult:
        with self.state.lock_for(publisher_id):
            result = self.evaluate(publisher_id, posts)
            self.commit(publisher_id, result)
        return result


__all__ = ["ChangeDetector", "DetectionResult", "RefreshState", "SQLiteRefreshState"]
