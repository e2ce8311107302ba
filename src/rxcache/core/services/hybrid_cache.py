"""Hybrid cache service - orchestrates the L1 and L2 tiers."""

import inspect
import logging
from datetime import timedelta
from typing import Any, TypeVar

from rxcache.core.entities.cache_key import as_pattern
from rxcache.core.entities.cache_settings import CacheConsistency
from rxcache.core.entities.invalidation_message import InvalidationMessage
from rxcache.core.interfaces.cache_service import ICacheService, Loader
from rxcache.core.interfaces.invalidation_channel import IInvalidationChannel
from rxcache.core.services.invalidation_tracker import InvalidationTracker
from rxcache.infrastructure.backends.memory import MemoryCacheService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HybridCacheService:
    """Combines an in-process L1 cache with a shared L2 cache.

    Reads check L1, then L2 (populating L1 on an L2 hit), then call the
    loader and write L2 before L1. Invalidations remove the key from
    both tiers and, in STRONG mode, broadcast it so every peer drops
    its L1 copy. In EVENTUAL mode peers' L1 entries simply expire.

    The orchestrator holds both tiers but not the Redis connection or
    the channel transport; their lifecycles belong to the bootstrap.
    """

    def __init__(
        self,
        l1: MemoryCacheService,
        l2: ICacheService,
        consistency: CacheConsistency = CacheConsistency.STRONG,
        channel: IInvalidationChannel | None = None,
    ) -> None:
        """Initialize the hybrid cache.

        Args:
            l1: The in-process tier.
            l2: The shared tier.
            consistency: STRONG broadcasts invalidations, EVENTUAL
                relies on L1 TTL expiry.
            channel: Invalidation channel. Required for STRONG mode to
                reach peers; ignored in EVENTUAL mode.
        """
        self._l1 = l1
        self._l2 = l2
        self._consistency = consistency
        self._channel = channel if consistency is CacheConsistency.STRONG else None
        self._tracker = InvalidationTracker()

        # Statistics
        self._l1_hits = 0
        self._l2_hits = 0
        self._misses = 0

        if self._channel is not None:
            self._channel.subscribe(self._on_invalidation)
            logger.info(
                "L1 cache configured with Strong consistency - listening for "
                "invalidation messages"
            )
        elif consistency is CacheConsistency.STRONG:
            logger.warning(
                "Strong consistency requested without an invalidation channel; "
                "peer L1 entries will only expire by TTL"
            )

    @property
    def l1(self) -> MemoryCacheService:
        return self._l1

    @property
    def l2(self) -> ICacheService:
        return self._l2

    @property
    def consistency(self) -> CacheConsistency:
        return self._consistency

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with L1 hits, L2 hits, misses, and total lookups.
        """
        return {
            "l1_hits": self._l1_hits,
            "l2_hits": self._l2_hits,
            "misses": self._misses,
            "total": self._l1_hits + self._l2_hits + self._misses,
        }

    async def get(self, key: str) -> Any | None:
        return (await self.try_get(key))[1]

    async def try_get(self, key: str) -> tuple[bool, Any | None]:
        snapshot = self._tracker.begin()
        try:
            return await self._read(key, snapshot)
        finally:
            self._tracker.finish(snapshot)

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        if value is None:
            return
        self._tracker.record(key)

        # L2 first: it is the shared source of truth
        await self._l2.set(key, value, ttl)
        self._l1.set_nowait(key, value, self._l1_ttl(ttl))

        # Overwrite: peers may hold an older copy
        await self._publish(InvalidationMessage(key))

    async def remove(self, key: str) -> None:
        self._tracker.record(key)
        self._l1.remove_nowait(key)
        await self._l2.remove(key)
        await self._publish(InvalidationMessage(key))
        logger.debug("Invalidated cache key: %s", key)

    async def remove_by_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix`` from both tiers.

        Returns:
            Number of keys removed from L2, the shared store. Keys only
            held in this instance's L1 are not counted, and the count
            is 0 while Redis is unreachable.
        """
        self._tracker.record(as_pattern(prefix))
        self._l1.remove_by_prefix_nowait(prefix)
        removed = await self._l2.remove_by_prefix(prefix)
        await self._publish(InvalidationMessage.for_prefix(prefix))
        logger.debug("Invalidated %d cache keys with prefix: %s", removed, prefix)
        return removed

    async def exists(self, key: str) -> bool:
        if self._l1.exists_nowait(key):
            return True
        return await self._l2.exists(key)

    async def get_or_add(
        self,
        key: str,
        loader: Loader[T],
        ttl: timedelta | None = None,
    ) -> T:
        snapshot = self._tracker.begin()
        try:
            found, cached = await self._read(key, snapshot)
            if found:
                return cached  # type: ignore[no-any-return]

            value = loader()
            if inspect.isawaitable(value):
                value = await value

            if value is not None:
                await self._populate(key, value, ttl, snapshot)
            return value  # type: ignore[return-value]
        finally:
            self._tracker.finish(snapshot)

    async def _read(self, key: str, snapshot: int) -> tuple[bool, Any | None]:
        found, value = self._l1.try_get_nowait(key)
        if found:
            self._l1_hits += 1
            logger.debug("L1 cache hit: %s", key)
            return True, value

        found, value = await self._l2.try_get(key)
        if found:
            self._l2_hits += 1
            logger.debug("L2 cache hit: %s", key)
            if self._tracker.is_current(key, snapshot):
                self._l1.set_nowait(key, value)
            return True, value

        self._misses += 1
        logger.debug("Cache miss: %s", key)
        return False, None

    async def _populate(
        self,
        key: str,
        value: Any,
        ttl: timedelta | None,
        snapshot: int,
    ) -> None:
        """Write a loaded value to L2 then L1, unless it went stale."""
        if not self._tracker.is_current(key, snapshot):
            logger.debug("Not caching %s: invalidated while loading", key)
            return

        await self._l2.set(key, value, ttl)
        if not self._tracker.is_current(key, snapshot):
            # An invalidation ran during the L2 write and may have been
            # applied before it; undo so the stale value cannot outlive it.
            await self._l2.remove(key)
            logger.debug("Discarded %s from L2: invalidated while writing", key)
            return

        self._l1.set_nowait(key, value, self._l1_ttl(ttl))

    def _l1_ttl(self, ttl: timedelta | None) -> timedelta | None:
        if self._consistency is CacheConsistency.STRONG:
            return ttl
        l1_default = self._l1.default_ttl
        if ttl is None:
            return l1_default
        if l1_default is None:
            return ttl
        return min(ttl, l1_default)

    async def _publish(self, message: InvalidationMessage) -> None:
        if self._channel is None:
            return
        try:
            await self._channel.publish(message)
        except Exception as e:
            logger.error(
                "Failed to publish cache invalidation for key %s: %s", message.key, e
            )

    async def _on_invalidation(self, message: InvalidationMessage) -> None:
        self._tracker.record(message.key)
        if message.is_prefix:
            self._l1.remove_by_prefix_nowait(message.prefix)
        else:
            self._l1.remove_nowait(message.key)
        logger.debug("L1 cache invalidated for key: %s", message.key)
