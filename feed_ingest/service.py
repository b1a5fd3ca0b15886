"""Wire configuration into a runnable refresh engine and expose its triggers."""

from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from pathlib import Path
from typing import Sequence

from .config import ConfigRepository, ConfigurationError, GlobalConfig, Publisher
from .engine import ChangeDetector, FeedFetcher, Post, RefreshState, SQLiteRefreshState
from .engine.store import BasePostStore, MemoryPostStore, MongoPostStore, SQLitePostStore
from .infra import BaseLogoCache, FileLogoCache, MemoryLogoCache, SQLiteManager, resolve_logo
from .logging_conf import configure_logging
from .notify import (
    CompositeNotificationHook,
    LoggingNotificationHook,
    NotificationHook,
    NullNotificationHook,
    WebhookNotificationHook,
)
from .orchestrator import RefreshOrchestrator, RefreshSummary
from .scheduler import APSchedulerAdapter


def build_post_store(config: GlobalConfig, data_dir: Path, storage: SQLiteManager) -> BasePostStore:
    store_cfg = config.store
    if store_cfg.backend == "sqlite":
        return SQLitePostStore(storage, GlobalConfig.resolve_path(store_cfg.path, data_dir))
    if store_cfg.backend == "mongodb":
        return MongoPostStore(store_cfg.uri, database=store_cfg.database, collection=store_cfg.collection)
    if store_cfg.backend == "memory":
        return MemoryPostStore()
    raise ConfigurationError(f"Unsupported store backend: {store_cfg.backend}")


def build_logo_cache(config: GlobalConfig, data_dir: Path) -> BaseLogoCache:
    if config.logo_cache.backend == "memory":
        return MemoryLogoCache()
    return FileLogoCache(GlobalConfig.resolve_path(config.logo_cache.directory, data_dir))


def build_refresh_state(config: GlobalConfig, data_dir: Path, storage: SQLiteManager) -> RefreshState:
    if config.persist_refresh_state:
        return SQLiteRefreshState(storage, GlobalConfig.resolve_path(config.state_path, data_dir))
    return RefreshState()


def build_notifier(config: GlobalConfig) -> NotificationHook:
    hooks: list[NotificationHook] = []
    if config.notifications.log_events:
        hooks.append(LoggingNotificationHook())
    if config.notifications.webhook_url:
        hooks.append(
            WebhookNotificationHook(
                config.notifications.webhook_url, timeout=config.notifications.webhook_timeout
            )
        )
    if not hooks:
        return NullNotificationHook()
    return CompositeNotificationHook(hooks)


@dataclass(slots=True)
class PostPage:
    total: int
    page: int
    limit: int
    has_more: bool
    posts: list[Post]

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "hasMore": self.has_more,
            "posts": [post.to_record() for post in self.posts],
        }


def search_posts(posts: Sequence[Post], search: str | None) -> list[Post]:
    """Case-insensitive substring match over title, subtitle and author."""

    if not search:
        return list(posts)
    needle = search.lower()
    return [
        post
        for post in posts
        if needle in post.title.lower()
        or needle in (post.subtitle or "").lower()
        or needle in post.author.lower()
    ]


def paginate(posts: Sequence[Post], page: int = 1, limit: int = 10) -> PostPage:
    page = max(1, page)
    limit = max(1, limit)
    total = len(posts)
    total_pages = ceil(total / limit)
    start = (page - 1) * limit
    return PostPage(
        total=total,
        page=page,
        limit=limit,
        has_more=page < total_pages,
        posts=list(posts[start : start + limit]),
    )


class RefreshService:
    """Startup wiring plus the three refresh triggers (start, schedule, on demand).

    Configuration problems surface while constructing the service; once built,
    a refresh cycle cannot hit them.
    """

    def __init__(
        self,
        repository: ConfigRepository,
        orchestrator: RefreshOrchestrator,
        store: BasePostStore,
        logo_cache: BaseLogoCache,
        scheduler: APSchedulerAdapter | None = None,
        storage: SQLiteManager | None = None,
    ) -> None:
        self.repository = repository
        self.config = repository.load_global_config()
        self.publishers: list[Publisher] = repository.load_publishers()
        self.orchestrator = orchestrator
        self.store = store
        self.logo_cache = logo_cache
        self.scheduler = scheduler or APSchedulerAdapter()
        self.storage = storage
        self.logger = configure_logging().bind(component="service")

    @classmethod
    def from_repository(cls, repository: ConfigRepository | None = None) -> "RefreshService":
        repository = repository or ConfigRepository()
        config = repository.load_global_config()
        repository.load_publishers()
        data_dir = repository.locator.data_dir
        storage = SQLiteManager()
        store = build_post_store(config, data_dir, storage)
        logo_cache = build_logo_cache(config, data_dir)
        orchestrator = RefreshOrchestrator(
            fetcher=FeedFetcher(config.fetch, logo_cache=logo_cache),
            store=store,
            detector=ChangeDetector(build_refresh_state(config, data_dir, storage)),
            notifier=build_notifier(config),
            max_workers=config.max_workers,
            preview_size=config.notifications.preview_size,
        )
        return cls(repository, orchestrator, store, logo_cache, storage=storage)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def run_once(self) -> RefreshSummary:
        return self.orchestrator.refresh_all(self.publishers)

    def check_store(self) -> int:
        """Touch the store so an unreachable backend fails before a refresh starts."""

        return self.store.count()

    def start(self) -> None:
        """Run at start (when configured) and every scheduled interval."""

        self.scheduler.schedule_refresh(self.config.schedule, self.run_once)
        self.scheduler.start()
        self.logger.info("service_started", publishers=len(self.publishers))

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        self.orchestrator.close()
        self.orchestrator.fetcher.close()
        self.orchestrator.notifier.close()
        self.store.close()
        if self.storage is not None:
            self.storage.close_all()
        self.logger.info("service_stopped")

    # ------------------------------------------------------------------
    # Serving-layer reads
    # ------------------------------------------------------------------
    def list_posts(
        self,
        publisher_id: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> PostPage:
        if publisher_id:
            posts = self.store.query_by_publisher(publisher_id)
        else:
            posts = self.store.query_all()
        return paginate(search_posts(posts, search), page=page, limit=limit)

    def latest_new_posts(self) -> list[Post]:
        return self.orchestrator.latest_new_posts

    def logo_for(self, publisher_id: str) -> str:
        publisher = next((p for p in self.publishers if p.id == publisher_id), None)
        default = (publisher.logo_url if publisher else None) or self.config.logo_cache.default_logo_url
        return resolve_logo(self.logo_cache, publisher_id, default)


__all__ = [
    "PostPage",
    "RefreshService",
    "build_logo_cache",
    "build_notifier",
    "build_post_store",
    "build_refresh_state",
    "paginate",
    "search_posts",
]
