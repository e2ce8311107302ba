"""Domain services for rxcache."""

from rxcache.core.services.hybrid_cache import HybridCacheService
from rxcache.core.services.invalidation_tracker import InvalidationTracker
from rxcache.core.services.null_cache import NullCacheService
from rxcache.core.services.sync_cache import SyncCacheService

__all__ = [
    "HybridCacheService",
    "InvalidationTracker",
    "NullCacheService",
    "SyncCacheService",
]
