"""
Cache package for resource persistence.

This package provides the cache stores used by every resource client:
- File cache (file_cache.py): one JSON document per key
- Key-value cache (kv_cache.py): SQLite table per namespace, one row per key
"""

from esi.cache.base import CacheStore
from esi.cache.file_cache import FileCacheStore
from esi.cache.kv_cache import SQLiteCacheStore

__all__ = [
    "CacheStore",
    "FileCacheStore",
    "SQLiteCacheStore",
]
