"""Core domain layer for rxcache."""

from rxcache.core.entities import (
    CacheConsistency,
    CacheEntry,
    CacheKey,
    CacheSettings,
    InvalidationMessage,
)
from rxcache.core.interfaces import ICacheService, IInvalidationChannel, ISerializer

__all__ = [
    # Entities
    "CacheConsistency",
    "CacheEntry",
    "CacheKey",
    "CacheSettings",
    "InvalidationMessage",
    # Interfaces
    "ICacheService",
    "IInvalidationChannel",
    "ISerializer",
]
