"""MongoDB post store implementation."""

from __future__ import annotations

from typing import Any, Sequence

from pymongo import ASCENDING, DESCENDING, MongoClient, UpdateOne
from pymongo.errors import PyMongoError

from ..normalizer import Post
from .base import BasePostStore, StoreError


class MongoPostStore(BasePostStore):
    """Posts as documents keyed by ``_id`` = post id."""

    def __init__(
        self,
        uri: str | None = None,
        database: str = "feed_ingest",
        collection: str = "posts",
        *,
        client: Any = None,
    ) -> None:
        if client is None and not uri:
            raise ValueError("MongoPostStore requires a connection URI")
        self.client = client if client is not None else MongoClient(uri)
        self.collection = self.client[database][collection]

    def replace_publisher_posts(self, publisher_id: str, posts: Sequence[Post]) -> int:
        operations = []
        for post in posts:
            document = post.to_record()
            document["_id"] = post.id
            operations.append(UpdateOne({"_id": post.id}, {"$set": document}, upsert=True))
        try:
            self.collection.delete_many({"publisherId": publisher_id})
            if operations:
                self.collection.bulk_write(operations, ordered=False)
        except PyMongoError as exc:
            raise StoreError(f"Failed to save posts for {publisher_id}: {exc}") from exc
        return len(operations)

    def query_all(self) -> list[Post]:
        return self._find({})

    def query_by_publisher(self, publisher_id: str) -> list[Post]:
        return self._find({"publisherId": publisher_id})

    def count(self) -> int:
        try:
            return self.collection.count_documents({})
        except PyMongoError as exc:
            raise StoreError(f"Failed to count posts: {exc}") from exc

    def close(self) -> None:
        self.client.close()

    def _find(self, query: dict) -> list[Post]:
        try:
            cursor = self.collection.find(query).sort(
                [("publishDate", DESCENDING), ("_id", ASCENDING)]
            )
            return [Post.from_record(document) for document in cursor]
        except PyMongoError as exc:
            raise StoreError(f"Failed to read posts: {exc}") from exc


__all__ = ["MongoPostStore"]
