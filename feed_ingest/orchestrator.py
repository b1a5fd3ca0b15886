"""Refresh orchestrator wiring together fetching, normalising, detection, storage and notification."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Iterable

import structlog

from .config import Publisher
from .engine import ChangeDetector, FeedFetcher, Post, PostNormalizer
from .engine.normalizer import format_timestamp
from .engine.store import BasePostStore
from .logging_conf import configure_logging, publisher_logger
from .notify import NewContentEvent, NotificationHook, NullNotificationHook

DEFAULT_PREVIEW_SIZE = 5


@dataclass(slots=True)
class PublisherOutcome:
    """Result of one publisher's pass: updated, unchanged, empty, skipped or failed."""

    publisher_id: str
    status: str
    saved: int = 0
    new_posts: list[Post] = field(default_factory=list)
    reason: str | None = None


@dataclass(slots=True)
class RefreshSummary:
    updated_count: int = 0
    new_content_found: bool = False
    new_posts: list[Post] = field(default_factory=list)
    outcomes: list[PublisherOutcome] = field(default_factory=list)
    total_publishers: int = 0
    skipped: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "success": not self.skipped,
            "skipped": self.skipped,
            "updated": self.updated_count,
            "newContentFound": self.new_content_found,
            "newPosts": len(self.new_posts),
            "totalPublishers": self.total_publishers,
            "outcomes": {outcome.publisher_id: outcome.status for outcome in self.outcomes},
        }


class RefreshOrchestrator:
    """Drive fetch → normalise → detect → persist across publishers.

    Owns the change detector state and the latest-new-posts buffer, so
    separate instances never share state. ``refresh_all`` never raises and
    rejects a call that overlaps a refresh already in progress.
    """

    def __init__(
        self,
        fetcher: FeedFetcher,
        store: BasePostStore,
        normalizer: PostNormalizer | None = None,
        detector: ChangeDetector | None = None,
        notifier: NotificationHook | None = None,
        max_workers: int = 1,
        preview_size: int = DEFAULT_PREVIEW_SIZE,
        logger_factory: Callable[[str], structlog.BoundLogger] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.store = store
        self.normalizer = normalizer or PostNormalizer()
        self.detector = detector or ChangeDetector()
        self.notifier = notifier or NullNotificationHook()
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        if max_workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="refresh")
        self.preview_size = preview_size
        self.logger = configure_logging().bind(component="orchestrator")
        self._logger_factory = logger_factory or publisher_logger
        self._running = Lock()
        self._latest_lock = Lock()
        self._latest_new_posts: list[Post] = []

    # ------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._running.locked()

    @property
    def latest_new_posts(self) -> list[Post]:
        with self._latest_lock:
            return list(self._latest_new_posts)

    def refresh_all(self, publishers: Iterable[Publisher]) -> RefreshSummary:
        if not self._running.acquire(blocking=False):
            self.logger.warning("refresh_already_running")
            return RefreshSummary(skipped=True)
        try:
            return self._refresh_all(list(publishers))
        finally:
            self._running.release()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    # ------------------------------------------------------------------
    def _refresh_all(self, publishers: list[Publisher]) -> RefreshSummary:
        started = datetime.now(timezone.utc)
        self.logger.info("refresh_started", publishers=len(publishers))
        outcomes = self._run_publishers(publishers)

        summary = RefreshSummary(
            outcomes=outcomes,
            total_publishers=len(publishers),
            started_at=started,
        )
        for outcome in outcomes:
            if outcome.status == "updated":
                summary.updated_count += 1
                summary.new_posts.extend(outcome.new_posts)
        summary.new_content_found = summary.updated_count > 0

        if summary.new_content_found:
            with self._latest_lock:
                self._latest_new_posts = list(summary.new_posts)
            self._notify(summary.new_posts)

        summary.finished_at = datetime.now(timezone.utc)
        self.logger.info(
            "refresh_completed",
            updated=summary.updated_count,
            new_content_found=summary.new_content_found,
            new_posts=len(summary.new_posts),
            failed=sum(1 for outcome in outcomes if outcome.status == "failed"),
        )
        return summary

    def _run_publishers(self, publishers: list[Publisher]) -> list[PublisherOutcome]:
        if self._executor is None or len(publishers) <= 1:
            return [self._refresh_publisher(publisher) for publisher in publishers]
        futures = [self._executor.submit(self._refresh_publisher, publisher) for publisher in publishers]
        return [future.result() for future in futures]

    def _refresh_publisher(self, publisher: Publisher) -> PublisherOutcome:
        try:
            return self._process_publisher(publisher)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("publisher_refresh_failed", publisher=publisher.id, error=str(exc))
            return PublisherOutcome(publisher_id=publisher.id, status="failed", reason=str(exc))

    def _process_publisher(self, publisher: Publisher) -> PublisherOutcome:
        log = self._logger_factory(publisher.id)
        if not publisher.feed_url:
            log.warning("feed_url_missing", name=publisher.name)
            return PublisherOutcome(publisher_id=publisher.id, status="skipped", reason="missing_feed_url")

        document = self.fetcher.fetch(publisher)
        posts = self.normalizer.normalize_feed(document, publisher)
        if not posts:
            log.info("no_posts_found")
            return PublisherOutcome(publisher_id=publisher.id, status="empty")

        with self.detector.state.lock_for(publisher.id):
            detection = self.detector.evaluate(publisher.id, posts)
            try:
                saved = self.store.replace_publisher_posts(publisher.id, posts)
            except Exception as exc:  # noqa: BLE001
                log.error("store_write_failed", posts=len(posts), error=str(exc))
                return PublisherOutcome(publisher_id=publisher.id, status="failed", reason=str(exc))
            self.detector.commit(publisher.id, detection)
        log.info("posts_saved", saved=saved)

        if not detection.is_new_content:
            log.info(
                "no_new_content",
                latest=format_timestamp(detection.latest) if detection.latest else None,
                previous=format_timestamp(detection.previous),
            )
            return PublisherOutcome(publisher_id=publisher.id, status="unchanged", saved=saved)

        new_posts = [replace(post, publisher_name=publisher.name) for post in detection.new_posts]
        log.info("new_content_found", new_posts=len(new_posts))
        return PublisherOutcome(
            publisher_id=publisher.id, status="updated", saved=saved, new_posts=new_posts
        )

    def _notify(self, new_posts: list[Post]) -> None:
        event = NewContentEvent(count=len(new_posts), posts=new_posts[: self.preview_size])
        try:
            self.notifier.notify(event)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("notification_failed", error=str(exc), count=event.count)


__all__ = ["PublisherOutcome", "RefreshOrchestrator", "RefreshSummary"]
