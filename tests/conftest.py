"""Shared fixtures for the feed ingestion test-suite."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable
from xml.sax.saxutils import escape

import pytest
import structlog

from feed_ingest.config import ConfigLocator, ConfigRepository, Publisher
from feed_ingest.engine import FeedDocument, Post, RawEntry


class StubFetcher:
    """Return canned documents per publisher id; exceptions are raised."""

    def __init__(self, documents: dict[str, Any] | None = None) -> None:
        self.documents = documents or {}
        self.calls: list[str] = []
        self.on_fetch: Callable[[], None] | None = None
        self.closed = False

    def fetch(self, publisher: Publisher) -> FeedDocument:
        self.calls.append(publisher.id)
        if self.on_fetch is not None:
            self.on_fetch()
        document = self.documents.get(publisher.id)
        if isinstance(document, Exception):
            raise document
        return document or FeedDocument(url=publisher.feed_url)

    def close(self) -> None:
        self.closed = True


def _render_item(item: dict[str, Any]) -> str:
    parts = ["<item>"]
    if item.get("title") is not None:
        parts.append(f"<title>{escape(item['title'])}</title>")
    if item.get("link"):
        parts.append(f"<link>{escape(item['link'])}</link>")
    if item.get("guid"):
        parts.append(f'<guid isPermaLink="false">{escape(item["guid"])}</guid>')
    if item.get("pub_date"):
        parts.append(f"<pubDate>{item['pub_date']}</pubDate>")
    if item.get("description"):
        parts.append(f"<description><![CDATA[{item['description']}]]></description>")
    if item.get("content"):
        parts.append(f"<content:encoded><![CDATA[{item['content']}]]></content:encoded>")
    if item.get("enclosure"):
        url, mime = item["enclosure"]
        parts.append(f'<enclosure url="{escape(url)}" type="{mime}" length="0"/>')
    parts.append("</item>")
    return "".join(parts)


@pytest.fixture
def rss_document() -> Callable[..., bytes]:
    def _builder(
        items: Iterable[dict[str, Any]],
        title: str = "Example Feed",
        image: str | None = "https://example.com/logo.png",
    ) -> bytes:
        image_block = (
            f"<image><url>{escape(image)}</url><title>{escape(title)}</title>"
            f"<link>https://example.com</link></image>"
            if image
            else ""
        )
        body = "".join(_render_item(item) for item in items)
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">'
            f"<channel><title>{escape(title)}</title><link>https://example.com</link>"
            f"<description>Example</description>{image_block}{body}</channel></rss>"
        ).encode("utf-8")

    return _builder


@pytest.fixture
def sample_publisher() -> Callable[..., Publisher]:
    def _builder(**overrides: Any) -> Publisher:
        base: dict[str, Any] = {
            "id": "example",
            "name": "Example Writer",
            "feed_url": "https://example.com/feed",
            "publication_name": "Example Letters",
        }
        base.update(overrides)
        return Publisher(**base)

    return _builder


@pytest.fixture
def make_entry() -> Callable[..., RawEntry]:
    def _builder(guid: str, published: datetime | None = None, **overrides: Any) -> RawEntry:
        base: dict[str, Any] = {
            "guid": guid,
            "link": f"https://example.com/{guid}",
            "title": f"Post {guid}",
            "description": f"About {guid}",
            "published": published.isoformat() if published else None,
        }
        base.update(overrides)
        return RawEntry(**base)

    return _builder


@pytest.fixture
def make_post() -> Callable[..., Post]:
    def _builder(post_id: str, publish_date: datetime, publisher_id: str = "example", **overrides: Any) -> Post:
        base: dict[str, Any] = {
            "id": post_id,
            "title": f"Post {post_id}",
            "subtitle": "",
            "author": "Example Writer",
            "publication_name": "Example Letters",
            "publish_date": publish_date,
            "link": f"https://example.com/{post_id}",
            "publisher_id": publisher_id,
        }
        base.update(overrides)
        return Post(**base)

    return _builder


@pytest.fixture
def quiet_logger_factory() -> Callable[[str], structlog.BoundLogger]:
    return lambda publisher_id: structlog.get_logger("feed_ingest.tests").bind(publisher=publisher_id)


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("FEED_INGEST_HOME", str(tmp_path))
    monkeypatch.delenv("MONGODB_URI", raising=False)
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository


@pytest.fixture
def stub_fetcher() -> Callable[..., StubFetcher]:
    return StubFetcher
