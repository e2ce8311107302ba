"""Domain entities for rxcache."""

from rxcache.core.entities.cache_entry import CacheEntry, CacheTier
from rxcache.core.entities.cache_key import CacheKey, as_pattern, is_pattern
from rxcache.core.entities.cache_settings import (
    CacheConsistency,
    CacheSettings,
    LocalCacheSettings,
    RemoteCacheSettings,
)
from rxcache.core.entities.invalidation_message import InvalidationMessage

__all__ = [
    "CacheEntry",
    "CacheTier",
    "CacheKey",
    "as_pattern",
    "is_pattern",
    "CacheConsistency",
    "CacheSettings",
    "LocalCacheSettings",
    "RemoteCacheSettings",
    "InvalidationMessage",
]
