"""Request pipeline stage providing transparent caching.

Queries that declare a ``cache_key`` are served through the cache;
commands that declare ``cache_keys_to_invalidate`` invalidate those
keys after they succeed. Handlers never see the cache.

Example:
    @dataclass
    class GetPatientById:
        patient_id: str

        @property
        def cache_key(self) -> str:
            return f"patients:{self.patient_id}"

    behavior = CachingBehavior(runtime.service)
    patient = await behavior.handle(query, lambda: handler.handle(query))
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import timedelta
from typing import Any, Protocol, TypeVar, runtime_checkable

from rxcache.core.entities.cache_key import WILDCARD, is_pattern
from rxcache.core.interfaces.cache_service import ICacheService

logger = logging.getLogger(__name__)

T = TypeVar("T")

NextHandler = Callable[[], Awaitable[T]]


@runtime_checkable
class CacheableQuery(Protocol):
    """A query whose result may be cached.

    Optional attributes:
        cache_ttl_seconds: TTL override in seconds. None uses the
            configured default.
        bypass_cache: Skip the cache and always run the handler.
    """

    @property
    def cache_key(self) -> str:
        """Key uniquely identifying the query and its parameters."""
        ...


@runtime_checkable
class CacheInvalidatingCommand(Protocol):
    """A command that invalidates cache entries when it succeeds.

    Keys ending in ``*`` invalidate every key with that prefix.
    """

    @property
    def cache_keys_to_invalidate(self) -> Iterable[str]:
        ...


async def invalidate_keys(cache: ICacheService, keys: Iterable[str]) -> None:
    """Invalidate exact keys and ``prefix*`` patterns."""
    for key in keys:
        if is_pattern(key):
            prefix = key[: -len(WILDCARD)]
            await cache.remove_by_prefix(prefix)
            logger.debug("Invalidated cache keys with prefix: %s", prefix)
        else:
            await cache.remove(key)
            logger.debug("Invalidated cache key: %s", key)


def ttl_from_seconds(seconds: int | None) -> timedelta | None:
    if seconds is None:
        return None
    return timedelta(seconds=seconds)


class CachingBehavior:
    """Pipeline behavior wrapping a request handler with caching."""

    def __init__(self, cache: ICacheService) -> None:
        self._cache = cache

    async def handle(self, request: Any, next_handler: NextHandler[T]) -> T:
        """Run ``next_handler`` for ``request`` with caching applied.

        Args:
            request: The query or command being dispatched.
            next_handler: Runs the actual business handler.

        Returns:
            The handler's (or the cached) response.
        """
        if isinstance(request, CacheableQuery):
            return await self._handle_query(request, next_handler)

        response = await next_handler()

        # Only after success: a failed command leaves the cache alone
        if isinstance(request, CacheInvalidatingCommand):
            await invalidate_keys(self._cache, request.cache_keys_to_invalidate)

        return response

    async def _handle_query(self, query: CacheableQuery, next_handler: NextHandler[T]) -> T:
        if getattr(query, "bypass_cache", False):
            logger.debug("Cache bypassed for query: %s", query.cache_key)
            return await next_handler()

        ttl = ttl_from_seconds(getattr(query, "cache_ttl_seconds", None))
        return await self._cache.get_or_add(query.cache_key, next_handler, ttl)
