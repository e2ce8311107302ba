"""Infrastructure layer implementations for rxcache."""

from rxcache.infrastructure.backends import MemoryCacheService, RedisCacheService
from rxcache.infrastructure.channels import (
    InMemoryInvalidationChannel,
    RedisInvalidationChannel,
)
from rxcache.infrastructure.serializers import JsonSerializer

__all__ = [
    "MemoryCacheService",
    "RedisCacheService",
    "InMemoryInvalidationChannel",
    "RedisInvalidationChannel",
    "JsonSerializer",
]
