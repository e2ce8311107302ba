"""rxcache - Two-tier caching for the prescription API.

An in-process L1 cache in front of a shared Redis L2 cache, with
read-through population, write-through updates and pub/sub
invalidation so every instance's L1 stays coherent in Strong
consistency mode. After startup the cache never fails a request: a
Redis outage only turns L2 reads into misses.

Example:
    from rxcache import CacheSettings, bootstrap

    settings = CacheSettings.from_mapping({
        "L1": {"Enabled": True, "TtlSeconds": 30, "MaxItems": 10000},
        "L2": {"Enabled": True, "ConnectionString": "redis://localhost:6379/0"},
        "Consistency": "Strong",
    })

    # Fails fast if Redis is unreachable
    runtime = await bootstrap(settings)
    cache = runtime.service

    patient = await cache.get_or_add(
        "patients:42",
        lambda: repository.get_patient("42"),
        ttl=timedelta(minutes=5),
    )

    # After a write
    await cache.remove("patients:42")
    await cache.remove_by_prefix("patients:list:")

    await runtime.close()

Pipeline integration:
    from rxcache.pipeline import CachingBehavior

    behavior = CachingBehavior(runtime.service)
    result = await behavior.handle(request, lambda: handler.handle(request))
"""

from rxcache.bootstrap import CacheRuntime, bootstrap, select_cache_service
from rxcache.core.entities import (
    CacheConsistency,
    CacheEntry,
    CacheKey,
    CacheSettings,
    CacheTier,
    InvalidationMessage,
    LocalCacheSettings,
    RemoteCacheSettings,
)
from rxcache.core.interfaces import (
    ICacheService,
    IInvalidationChannel,
    ISerializer,
)
from rxcache.core.services import (
    HybridCacheService,
    NullCacheService,
    SyncCacheService,
)
from rxcache.decorators import cached, configure, invalidates
from rxcache.infrastructure import (
    InMemoryInvalidationChannel,
    JsonSerializer,
    MemoryCacheService,
    RedisCacheService,
    RedisInvalidationChannel,
)
from rxcache.infrastructure.backends.redis import CacheUnavailableError
from rxcache.infrastructure.serializers.json import SerializationError
from rxcache.pipeline import (
    CacheableQuery,
    CacheInvalidatingCommand,
    CachingBehavior,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core entities
    "CacheConsistency",
    "CacheEntry",
    "CacheKey",
    "CacheSettings",
    "CacheTier",
    "InvalidationMessage",
    "LocalCacheSettings",
    "RemoteCacheSettings",
    # Core interfaces
    "ICacheService",
    "IInvalidationChannel",
    "ISerializer",
    # Cache variants
    "HybridCacheService",
    "MemoryCacheService",
    "NullCacheService",
    "RedisCacheService",
    "SyncCacheService",
    # Invalidation channels
    "InMemoryInvalidationChannel",
    "RedisInvalidationChannel",
    # Serialization
    "JsonSerializer",
    # Errors
    "CacheUnavailableError",
    "SerializationError",
    # Bootstrap
    "CacheRuntime",
    "bootstrap",
    "select_cache_service",
    # Pipeline
    "CacheableQuery",
    "CacheInvalidatingCommand",
    "CachingBehavior",
    # Decorators
    "cached",
    "invalidates",
    "configure",
]
