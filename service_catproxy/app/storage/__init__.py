"""
Proxy cache storage package.

The store is the only component that touches the cache root; everything
else addresses entries by key.
"""

from .cache_store import CacheStore, FileCacheStore, MemoryCacheStore

__all__ = ["CacheStore", "FileCacheStore", "MemoryCacheStore"]
