"""Blocking facade over an async cache service."""

import asyncio
import concurrent.futures
from collections.abc import Callable, Coroutine
from datetime import timedelta
from typing import Any, TypeVar

from rxcache.core.interfaces.cache_service import ICacheService

T = TypeVar("T")


class SyncCacheService:
    """Synchronous calling convention for a cache service.

    The async tiers are bound to the event loop that created their
    Redis client, so every call is submitted to that loop and the
    calling thread blocks on the result. Use it from worker threads,
    such as FastAPI's sync route handlers; calling it on the loop's own
    thread would deadlock and raises ``RuntimeError`` instead.

    Example:
        sync_cache = SyncCacheService(runtime.service, loop)
        patient = sync_cache.get_or_add("patients:42", lambda: repo.get("42"))
    """

    def __init__(
        self,
        cache: ICacheService,
        loop: asyncio.AbstractEventLoop,
        timeout: float | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            cache: The async cache service to drive.
            loop: The running loop that owns ``cache``.
            timeout: Seconds to wait for each call. None waits for as
                long as the call takes. A call that outlives it is
                cancelled on the loop.
        """
        self._cache = cache
        self._loop = loop
        self._timeout = timeout

    @property
    def cache(self) -> ICacheService:
        return self._cache

    def get(self, key: str) -> Any | None:
        return self._run(self._cache.get(key))

    def try_get(self, key: str) -> tuple[bool, Any | None]:
        return self._run(self._cache.try_get(key))

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        self._run(self._cache.set(key, value, ttl))

    def remove(self, key: str) -> None:
        self._run(self._cache.remove(key))

    def remove_by_prefix(self, prefix: str) -> int:
        return self._run(self._cache.remove_by_prefix(prefix))

    def exists(self, key: str) -> bool:
        return self._run(self._cache.exists(key))

    def get_or_add(
        self,
        key: str,
        loader: Callable[[], T],
        ttl: timedelta | None = None,
    ) -> T:
        """Read-through with a blocking loader.

        The loader runs in the loop's default executor, so a slow data
        source never blocks the event loop.
        """
        return self._run(
            self._cache.get_or_add(key, lambda: asyncio.to_thread(loader), ttl)
        )

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            coro.close()
            raise RuntimeError(
                "SyncCacheService called on the event loop thread; await the "
                "async cache service instead"
            )

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(self._timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise
