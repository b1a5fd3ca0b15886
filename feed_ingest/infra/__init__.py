"""Infra layer utilities (SQLite connections, logo cache)."""

from .logo_cache import BaseLogoCache, FileLogoCache, MemoryLogoCache, resolve_logo
from .storage import SQLiteManager

__all__ = ["BaseLogoCache", "FileLogoCache", "MemoryLogoCache", "SQLiteManager", "resolve_logo"]
