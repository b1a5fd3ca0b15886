"""Engine components orchestrating fetch → normalise → detect → store."""

from .detector import ChangeDetector, DetectionResult, RefreshState, SQLiteRefreshState
from .fetcher import Enclosure, FeedDocument, FeedFetchError, FeedFetcher, RawEntry
from .normalizer import MIN_TIMESTAMP, Post, PostNormalizer

__all__ = [
    "ChangeDetector",
    "DetectionResult",
    "Enclosure",
    "FeedDocument",
    "FeedFetchError",
    "FeedFetcher",
    "MIN_TIMESTAMP",
    "Post",
    "PostNormalizer",
    "RawEntry",
    "RefreshState",
    "SQLiteRefreshState",
]
