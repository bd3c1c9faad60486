"""Data storage layer."""

from app.storage.cache import CacheEntry, CacheKey, ResultCache

__all__ = [
    "CacheEntry",
    "CacheKey",
    "ResultCache",
]
