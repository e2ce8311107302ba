"""Core interfaces (Protocol classes) for rxcache."""

from rxcache.core.interfaces.cache_service import ICacheService, Loader
from rxcache.core.interfaces.invalidation_channel import (
    IInvalidationChannel,
    InvalidationHandler,
)
from rxcache.core.interfaces.serializer import ISerializer

__all__ = [
    "ICacheService",
    "Loader",
    "IInvalidationChannel",
    "InvalidationHandler",
    "ISerializer",
]
