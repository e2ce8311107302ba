"""Invalidation channel implementations."""

from rxcache.infrastructure.channels.memory import (
    InMemoryInvalidationChannel,
    InvalidationHub,
)
from rxcache.infrastructure.channels.redis import RedisInvalidationChannel

__all__ = [
    "InMemoryInvalidationChannel",
    "InvalidationHub",
    "RedisInvalidationChannel",
]
