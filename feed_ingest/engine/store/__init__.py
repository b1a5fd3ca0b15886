"""Post store SPI and implementations."""

from .base import BasePostStore, StoreError
from .memory_store import MemoryPostStore
from .mongo_store import MongoPostStore
from .sqlite_store import SQLitePostStore

__all__ = ["BasePostStore", "MemoryPostStore", "MongoPostStore", "SQLitePostStore", "StoreError"]
