"""Post store Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..normalizer import Post


class StoreError(RuntimeError):
    """Backend failure while reading or writing posts."""


class BasePostStore(ABC):
    """Uniform store contract enabling plug-and-play backends.

    ``replace_publisher_posts`` drops everything previously stored for the
    publisher and upserts the fresh set keyed by post id, as one unit of work
    that does not touch other publishers' rows.
    """

    @abstractmethod
    def replace_publisher_posts(self, publisher_id: str, posts: Sequence[Post]) -> int:
        """Replace the publisher's posts; return the number written."""

    @abstractmethod
    def query_all(self) -> list[Post]:
        """All posts, newest first."""

    @abstractmethod
    def query_by_publisher(self, publisher_id: str) -> list[Post]:
        """One publisher's posts, newest first."""

    def count(self) -> int:
        return len(self.query_all())

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BasePostStore", "StoreError"]
