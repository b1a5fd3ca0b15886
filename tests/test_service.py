from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from feed_ingest.config import GlobalConfig, LogoCacheConfig, Publisher, StoreConfig
from feed_ingest.engine import FeedDocument
from feed_ingest.engine.store import MemoryPostStore
from feed_ingest.notify import CompositeNotificationHook, NullNotificationHook
from feed_ingest.service import RefreshService, build_notifier, paginate, search_posts

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_search_matches_title_subtitle_and_author(make_post) -> None:
    posts = [
        make_post("a", BASE, title="Rust in production"),
        make_post("b", BASE, subtitle="A note on PYTHON packaging"),
        make_post("c", BASE, author="Jane Python"),
        make_post("d", BASE, title="Unrelated"),
    ]
    assert [post.id for post in search_posts(posts, "python")] == ["b", "c"]
    assert len(search_posts(posts, None)) == 4


def test_paginate_bounds(make_post) -> None:
    posts = [make_post(str(index), BASE) for index in range(25)]

    first = paginate(posts, page=1, limit=10)
    last = paginate(posts, page=3, limit=10)
    beyond = paginate(posts, page=4, limit=10)

    assert first.has_more and len(first.posts) == 10
    assert not last.has_more and len(last.posts) == 5
    assert beyond.posts == [] and beyond.total == 25
    assert paginate([], page=1).to_dict() == {"total": 0, "page": 1, "limit": 10, "hasMore": False, "posts": []}


def test_build_notifier_variants() -> None:
    assert isinstance(build_notifier(GlobalConfig(notifications={"log_events": False})), NullNotificationHook)
    composite = build_notifier(GlobalConfig(notifications={"webhook_url": "https://hooks.example"}))
    assert isinstance(composite, CompositeNotificationHook)
    assert len(composite.hooks) == 2


@pytest.fixture
def service(temp_config_repository, stub_fetcher, make_entry, monkeypatch):
    temp_config_repository.save_global_config(
        GlobalConfig(
            store=StoreConfig(backend="memory"),
            logo_cache=LogoCacheConfig(backend="memory"),
            notifications={"log_events": False},
        )
    )
    temp_config_repository.save_publishers(
        [
            Publisher(id="alpha", name="Alpha", feed_url="https://alpha.example/feed"),
            Publisher(id="beta", name="Beta", feed_url="https://beta.example/feed"),
        ]
    )
    documents = {
        "alpha": FeedDocument(
            url="https://alpha.example/feed",
            entries=[make_entry("alpha-2", BASE + timedelta(hours=2)), make_entry("alpha-1", BASE)],
        ),
        "beta": FeedDocument(url="https://beta.example/feed", entries=[make_entry("beta-1", BASE + timedelta(hours=1))]),
    }
    fetcher = stub_fetcher(documents)
    monkeypatch.setattr("feed_ingest.service.FeedFetcher", lambda *args, **kwargs: fetcher)
    built = RefreshService.from_repository(temp_config_repository)
    yield built
    built.shutdown()


def test_service_wires_memory_backends(service: RefreshService) -> None:
    assert isinstance(service.store, MemoryPostStore)
    assert [publisher.id for publisher in service.publishers] == ["alpha", "beta"]
    assert service.check_store() == 0


def test_service_run_once_and_reads(service: RefreshService, temp_config_repository) -> None:
    summary = service.run_once()

    assert summary.updated_count == 2
    assert [post.id for post in service.latest_new_posts()] == ["alpha-2", "alpha-1", "beta-1"]
    page = service.list_posts(limit=2)
    assert [post.id for post in page.posts] == ["alpha-2", "beta-1"]
    assert page.has_more
    assert [post.id for post in service.list_posts(publisher_id="beta").posts] == ["beta-1"]
    assert service.list_posts(search="alpha-1").total == 1
    assert service.logo_for("alpha") == "/placeholder-image.jpg"
    assert (temp_config_repository.locator.data_dir / "state" / "refresh_state.db").exists()

    again = service.run_once()
    assert again.updated_count == 0


def test_service_shutdown_closes_notifier(service: RefreshService) -> None:
    notifier = MagicMock()
    service.orchestrator.notifier = notifier

    service.shutdown()

    notifier.close.assert_called_once()


def test_service_start_schedules_refresh(service: RefreshService) -> None:
    jobs: list[dict] = []

    class StubScheduler:
        def add_job(self, callback, **kwargs):
            jobs.append({"callback": callback, **kwargs})

        def start(self):
            jobs.append({"event": "started"})

        def shutdown(self, wait=False):  # noqa: ARG002
            jobs.append({"event": "shutdown"})

    service.scheduler.scheduler = StubScheduler()
    service.start()

    assert jobs[0]["callback"] == service.run_once
    assert jobs[-1] == {"event": "started"}
