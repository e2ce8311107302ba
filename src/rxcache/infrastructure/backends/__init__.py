"""Cache tier implementations."""

from rxcache.infrastructure.backends.memory import MemoryCacheService
from rxcache.infrastructure.backends.redis import (
    CacheUnavailableError,
    RedisCacheService,
    connect_redis,
    create_redis_client,
)

__all__ = [
    "MemoryCacheService",
    "RedisCacheService",
    "CacheUnavailableError",
    "connect_redis",
    "create_redis_client",
]
