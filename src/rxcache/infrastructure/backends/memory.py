"""In-memory L1 cache implementation."""

import inspect
import logging
import math
import threading
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

from cachetools import TLRUCache  # type: ignore[import-untyped]

from rxcache.core.entities.cache_entry import CacheEntry, CacheTier
from rxcache.core.entities.cache_key import is_pattern
from rxcache.core.interfaces.cache_service import Loader
from rxcache.core.interfaces.serializer import ISerializer
from rxcache.infrastructure.serializers.json import JsonSerializer, SerializationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _entry_expiry(_key: str, entry: CacheEntry, _now: float) -> float:
    return math.inf if entry.expires_at is None else entry.expires_at


class MemoryCacheService:
    """L1 in-process cache with per-entry TTL and LRU eviction.

    Uses cachetools' TLRUCache so every entry carries its own expiry
    while the item count stays bounded; expired entries are dropped
    first, then the least recently used one. All mutations run under
    one lock, so a prefix removal never interleaves with a ``set``.

    Values are stored serialized, with the same serializer the remote
    tier uses, so a hit returns a fresh copy of the same shape whichever
    tier served it.

    The async methods satisfy ``ICacheService`` but never await
    anything: every operation is pure in-memory work.
    """

    def __init__(
        self,
        maxsize: int = 10000,
        default_ttl: timedelta | None = timedelta(seconds=30),
        timer: Callable[[], float] = time.monotonic,
        serializer: ISerializer | None = None,
    ) -> None:
        """Initialize the in-memory cache.

        Args:
            maxsize: Maximum number of items in the cache.
            default_ttl: TTL used when ``set`` gets none. None means
                entries never expire.
            timer: Clock used for expiry, injectable for tests.
            serializer: Value serializer. Defaults to JSON.
        """
        self._maxsize = maxsize
        self._default_ttl = default_ttl
        self._cache: TLRUCache[str, CacheEntry] = TLRUCache(
            maxsize=maxsize,
            ttu=_entry_expiry,
            timer=timer,
        )
        self._lock = threading.RLock()
        self._serializer = serializer or JsonSerializer()

    def get_nowait(self, key: str) -> Any | None:
        return self.try_get_nowait(key)[1]

    def try_get_nowait(self, key: str) -> tuple[bool, Any | None]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None or entry.is_expired(self._cache.timer()):
                return False, None
            data = entry.value

        try:
            return True, self._serializer.deserialize(data)
        except Exception as e:
            logger.warning("Discarding unreadable L1 cache entry %s: %s", key, e)
            self.remove_nowait(key)
            return False, None

    def set_nowait(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        if is_pattern(key):
            raise ValueError(f"Pattern key {key!r} cannot be stored")
        if value is None:
            return
        try:
            data = self._serializer.serialize(value)
        except SerializationError as e:
            logger.error("Failed to serialize L1 cache key %s: %s", key, e)
            self.remove_nowait(key)
            return

        effective_ttl = ttl if ttl is not None else self._default_ttl
        with self._lock:
            entry = CacheEntry.create(
                key=key,
                value=data,
                tier=CacheTier.L1,
                now=self._cache.timer(),
                ttl=effective_ttl,
            )
            # Drop any previous value first: TLRUCache skips inserting
            # an already-expired entry and would otherwise keep it.
            self._cache.pop(key, None)
            # Sweep expired entries so they go before any live LRU entry
            self._cache.expire()
            self._cache[key] = entry

    def remove_nowait(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def remove_by_prefix_nowait(self, prefix: str) -> int:
        with self._lock:
            matching = [key for key in list(self._cache.keys()) if key.startswith(prefix)]
            for key in matching:
                self._cache.pop(key, None)
        if matching:
            logger.debug("L1 removed %d keys with prefix %s", len(matching), prefix)
        return len(matching)

    def exists_nowait(self, key: str) -> bool:
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and not entry.is_expired(self._cache.timer())

    def clear(self) -> None:
        """Clear all cached values."""
        with self._lock:
            self._cache.clear()

    async def get(self, key: str) -> Any | None:
        return self.get_nowait(key)

    async def try_get(self, key: str) -> tuple[bool, Any | None]:
        return self.try_get_nowait(key)

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        self.set_nowait(key, value, ttl)

    async def remove(self, key: str) -> None:
        self.remove_nowait(key)

    async def remove_by_prefix(self, prefix: str) -> int:
        return self.remove_by_prefix_nowait(prefix)

    async def exists(self, key: str) -> bool:
        return self.exists_nowait(key)

    async def get_or_add(
        self,
        key: str,
        loader: Loader[T],
        ttl: timedelta | None = None,
    ) -> T:
        found, cached = self.try_get_nowait(key)
        if found:
            return cached  # type: ignore[no-any-return]

        value = loader()
        if inspect.isawaitable(value):
            value = await value
        self.set_nowait(key, value, ttl)
        return value  # type: ignore[return-value]

    def __len__(self) -> int:
        """Return the number of live items in the cache."""
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    @property
    def maxsize(self) -> int:
        """Return the maximum size of the cache."""
        return self._maxsize

    @property
    def default_ttl(self) -> timedelta | None:
        return self._default_ttl
