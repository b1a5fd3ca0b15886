"""Feed retrieval: HTTP download with retry plus feedparser parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import feedparser
import httpx
import structlog

from ..config import FetchConfig, Publisher
from ..infra.logo_cache import BaseLogoCache


class FeedFetchError(RuntimeError):
    """Network, status or parse failure for a single feed."""


@dataclass(slots=True)
class Enclosure:
    url: str
    type: str = ""


@dataclass(slots=True)
class RawEntry:
    """One feed item as published, before normalisation."""

    guid: str | None = None
    link: str | None = None
    title: str | None = None
    content: str | None = None
    description: str | None = None
    published: str | None = None
    published_parsed: tuple | None = None
    enclosures: list[Enclosure] = field(default_factory=list)


@dataclass(slots=True)
class FeedDocument:
    """Parsed feed: entries in document order plus feed-level metadata."""

    url: str
    title: str | None = None
    image_url: str | None = None
    entries: list[RawEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entries


class FeedFetcher:
    """Fetch one publisher's feed; every failure collapses into an empty document."""

    def __init__(
        self,
        fetch_config: FetchConfig | None = None,
        logo_cache: BaseLogoCache | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetch_config = fetch_config or FetchConfig()
        self.logo_cache = logo_cache
        self.logger = logger or structlog.get_logger("feed_ingest.fetcher")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=self.fetch_config.timeout,
            headers={"User-Agent": self.fetch_config.user_agent},
        )

    def close(self) -> None:
        self._client.close()

    def fetch(self, publisher: Publisher) -> FeedDocument:
        url = publisher.feed_url
        if not url:
            self.logger.warning("feed_url_missing", publisher=publisher.id)
            return FeedDocument(url="")
        try:
            response = self._download(url)
            document = self._parse(str(response.url), response.content)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "feed_fetch_failed", publisher=publisher.id, url=url, error=str(exc)
            )
            return FeedDocument(url=url)

        if document.image_url and self.logo_cache is not None:
            self.logo_cache.set(publisher.id, document.image_url)
        self.logger.info(
            "feed_fetched",
            publisher=publisher.id,
            url=url,
            entries=len(document.entries),
            first_entry=document.entries[0].title if document.entries else None,
        )
        return document

    # ------------------------------------------------------------------
    def _download(self, url: str) -> httpx.Response:
        max_attempts = 1 + self.fetch_config.retry_on_fail
        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                response = self._client.request(
                    method="GET", url=url, timeout=self.fetch_config.timeout
                )
            except httpx.HTTPError as exc:
                self.logger.warning("fetch_error", url=url, attempt=attempt, error=str(exc))
                last_error = exc
                continue
            if self._is_failure(response):
                last_error = FeedFetchError(f"Unexpected status {response.status_code}")
                self.logger.warning(
                    "fetch_error", url=url, attempt=attempt, status=response.status_code
                )
                continue
            if response.status_code >= 400:
                raise FeedFetchError(f"Unexpected status {response.status_code}: {url}")
            return response
        raise FeedFetchError(f"Fetch failed after {max_attempts} attempts: {url}") from last_error

    def _parse(self, url: str, content: bytes) -> FeedDocument:
        parsed = feedparser.parse(content)
        if parsed.bozo and not parsed.entries:
            raise FeedFetchError(
                f"Malformed feed at {url}: {parsed.get('bozo_exception')}"
            )
        return FeedDocument(
            url=url,
            title=parsed.feed.get("title"),
            image_url=self._feed_image(parsed.feed),
            entries=[self._to_raw_entry(entry) for entry in parsed.entries],
        )

    @staticmethod
    def _feed_image(feed: Any) -> str | None:
        image = feed.get("image")
        if image and image.get("href"):
            return image["href"]
        return feed.get("logo") or feed.get("icon") or None

    @staticmethod
    def _to_raw_entry(entry: Any) -> RawEntry:
        content = None
        for block in entry.get("content") or []:
            value = block.get("value")
            if value:
                content = value
                break
        enclosures = [
            Enclosure(url=item.get("href") or item.get("url") or "", type=item.get("type") or "")
            for item in entry.get("enclosures") or []
        ]
        # feedparser copies content:encoded into summary when an item has no description
        description = entry.get("summary") or None
        if description is not None and description == content:
            description = None
        return RawEntry(
            guid=entry.get("id") or None,
            link=entry.get("link") or None,
            title=entry.get("title"),
            content=content,
            description=description,
            published=entry.get("published") or entry.get("updated"),
            published_parsed=entry.get("published_parsed") or entry.get("updated_parsed"),
            enclosures=[item for item in enclosures if item.url],
        )

    @staticmethod
    def _is_failure(response: Any) -> bool:
        status_code = getattr(response, "status_code", 0)
        if status_code >= 500:
            return True
        if status_code in {401, 403, 429}:
            return True
        return False


__all__ = ["Enclosure", "FeedDocument", "FeedFetchError", "FeedFetcher", "RawEntry"]
