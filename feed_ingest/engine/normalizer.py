"""Map raw feed entries onto canonical :class:`Post` records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Iterable

import structlog
from selectolax.parser import HTMLParser

from ..config import Publisher
from .fetcher import FeedDocument, RawEntry

MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)
SUBTITLE_MAX_LENGTH = 150
ELLIPSIS = "..."

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_IMG_SRC_PATTERN = re.compile(r'<img\b[^>]*?\ssrc="([^">]+)"')
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d %b %Y %H:%M:%S",
    "%d %b %Y",
)


@dataclass(slots=True)
class Post:
    """Canonical representation of one feed entry."""

    id: str
    title: str
    subtitle: str
    author: str
    publication_name: str | None
    publish_date: datetime
    link: str
    publisher_id: str
    cover_image: str | None = None
    logo_url: str | None = None
    # set on aggregated new posts only, never persisted
    publisher_name: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "author": self.author,
            "publicationName": self.publication_name,
            "publishDate": format_timestamp(self.publish_date),
            "link": self.link,
            "publisherId": self.publisher_id,
            "coverImage": self.cover_image,
            "logoUrl": self.logo_url,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Post":
        return cls(
            id=str(record.get("id") or record.get("_id")),
            title=record.get("title") or "",
            subtitle=record.get("subtitle") or "",
            author=record.get("author") or "",
            publication_name=record.get("publicationName"),
            publish_date=parse_publish_date(record.get("publishDate")),
            link=record.get("link") or "",
            publisher_id=record.get("publisherId") or "",
            cover_image=record.get("coverImage"),
            logo_url=record.get("logoUrl"),
        )


def format_timestamp(value: datetime) -> str:
    """Fixed-width ISO-8601 UTC text; lexical order equals chronological order."""

    return _to_utc(value).isoformat(timespec="microseconds")


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    if value.utcoffset() == timezone.utc.utcoffset(None):
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        return MIN_TIMESTAMP


def parse_publish_date(value: object, parsed: tuple | None = None) -> datetime:
    """Parse a feed date into an aware UTC datetime.

    RFC 822 dates (RSS), ISO-8601 (Atom) and a handful of loose layouts are
    accepted. ``parsed`` is feedparser's UTC struct, used when the text itself
    is unreadable. Anything else maps to :data:`MIN_TIMESTAMP`.
    """

    if isinstance(value, datetime):
        return _to_utc(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        candidate = _parse_text_date(text)
        if candidate is not None:
            return _to_utc(candidate)
    if parsed:
        try:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            pass
    return MIN_TIMESTAMP


def _parse_text_date(text: str) -> datetime | None:
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        pass
    normalised = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(normalised)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def strip_markup(html: str) -> str:
    """Visible text with entities decoded; blank lines between blocks survive."""

    return HTMLParser(html).text(separator=" ", strip=False).strip()


def truncate(text: str, limit: int = SUBTITLE_MAX_LENGTH) -> str:
    if len(text) > limit:
        return text[: limit - len(ELLIPSIS)] + ELLIPSIS
    return text


def extract_subtitle(content: str | None, description: str | None) -> str:
    """First paragraph of the full content, else the description, else ``""``."""

    if content:
        first_paragraph = _PARAGRAPH_BREAK.split(strip_markup(content))[0].strip()
        if first_paragraph:
            return truncate(first_paragraph)
    if description:
        return truncate(strip_markup(description))
    return ""


def find_image_src(html: str | None) -> str | None:
    if not html:
        return None
    match = _IMG_SRC_PATTERN.search(html)
    return match.group(1) if match else None


def extract_cover_image(entry: RawEntry) -> str | None:
    for enclosure in entry.enclosures:
        if enclosure.url and enclosure.type and enclosure.type.startswith("image/"):
            return enclosure.url
    return find_image_src(entry.content) or find_image_src(entry.description)


def resolve_post_id(entry: RawEntry) -> str | None:
    return entry.guid or entry.link or None


class PostNormalizer:
    """Turn a fetched feed into the publisher's post list."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("feed_ingest.normalizer")

    def normalize(self, entry: RawEntry, publisher: Publisher, metadata: FeedDocument) -> Post:
        post_id = resolve_post_id(entry)
        if post_id is None:
            raise ValueError("Feed entry has neither guid nor link")
        return Post(
            id=post_id,
            title=(entry.title or "").strip(),
            subtitle=extract_subtitle(entry.content, entry.description),
            author=publisher.name,
            publication_name=publisher.publication_name or metadata.title,
            publish_date=parse_publish_date(entry.published, entry.published_parsed),
            link=entry.link or "",
            publisher_id=publisher.id,
            cover_image=extract_cover_image(entry),
            logo_url=metadata.image_url or None,
        )

    def normalize_feed(self, document: FeedDocument, publisher: Publisher) -> list[Post]:
        """Normalise every entry in document order, dropping id-less and repeated entries."""

        posts: list[Post] = []
        seen: set[str] = set()
        for index, entry in enumerate(document.entries):
            if resolve_post_id(entry) is None:
                self.logger.warning("entry_without_id", publisher=publisher.id, position=index)
                continue
            post = self.normalize(entry, publisher, document)
            if post.id in seen:
                self.logger.debug("duplicate_entry", publisher=publisher.id, post_id=post.id)
                continue
            seen.add(post.id)
            posts.append(post)
        return posts


def newest_first(posts: Iterable[Post]) -> list[Post]:
    """Sort by publish date descending, ties broken by id."""

    return sorted(
        sorted(posts, key=lambda post: post.id),
        key=lambda post: _to_utc(post.publish_date),
        reverse=True,
    )


__all__ = [
    "MIN_TIMESTAMP",
    "Post",
    "PostNormalizer",
    "extract_cover_image",
    "extract_subtitle",
    "format_timestamp",
    "newest_first",
    "parse_publish_date",
    "resolve_post_id",
    "strip_markup",
    "truncate",
]
