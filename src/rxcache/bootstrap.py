"""Composition root for the cache subsystem.

``bootstrap`` runs once during process startup. It selects the cache
variant from the settings, connects Redis when the L2 tier is enabled
(failing fast if it is unreachable) and starts the invalidation
channel in STRONG mode. The returned ``CacheRuntime`` is the handle the
host keeps for the process lifetime and closes on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rxcache.core.entities.cache_settings import CacheConsistency, CacheSettings
from rxcache.core.interfaces.cache_service import ICacheService
from rxcache.core.interfaces.invalidation_channel import IInvalidationChannel
from rxcache.core.services.hybrid_cache import HybridCacheService
from rxcache.core.services.null_cache import NullCacheService
from rxcache.core.services.sync_cache import SyncCacheService
from rxcache.infrastructure.backends.memory import MemoryCacheService
from rxcache.infrastructure.backends.redis import (
    RedisCacheService,
    connect_redis,
    create_redis_client,
)
from rxcache.infrastructure.channels.redis import RedisInvalidationChannel

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass
class CacheRuntime:
    """Live cache subsystem and the resources it was built on."""

    settings: CacheSettings
    service: ICacheService
    redis_client: Redis | None = None
    channel: IInvalidationChannel | None = None
    owns_client: bool = False
    closed: bool = False
    loop: asyncio.AbstractEventLoop | None = field(default=None, repr=False)

    @property
    def l2_enabled(self) -> bool:
        return self.redis_client is not None

    def sync(self, timeout: float | None = None) -> SyncCacheService:
        """Blocking view of the service for use from worker threads.

        Raises:
            RuntimeError: If the runtime was built outside an event loop.
        """
        if self.loop is None:
            raise RuntimeError("Cache runtime has no event loop; use bootstrap()")
        return SyncCacheService(self.service, self.loop, timeout)

    async def close(self) -> None:
        """Stop the channel and close the Redis client if we created it."""
        if self.closed:
            return
        self.closed = True

        if self.channel is not None:
            await self.channel.stop()
        if self.redis_client is not None and self.owns_client:
            try:
                await self.redis_client.aclose()
            except Exception as e:
                logger.warning("Error closing Redis connection: %s", e)
        logger.info("Cache subsystem closed")

    async def __aenter__(self) -> CacheRuntime:
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()


def select_cache_service(
    settings: CacheSettings,
    l2: ICacheService | None = None,
    channel: IInvalidationChannel | None = None,
) -> ICacheService:
    """Pick the cache variant matching the enabled tiers.

    Args:
        settings: Cache settings.
        l2: The remote tier, required when ``settings.l2.enabled``.
        channel: Invalidation channel for STRONG hybrid mode.

    Returns:
        NullCacheService, MemoryCacheService, the remote tier, or a
        HybridCacheService composing both.
    """
    l1_enabled = settings.l1.enabled
    l2_enabled = settings.l2.enabled

    if not l1_enabled and not l2_enabled:
        logger.info("Caching disabled: using NullCacheService")
        return NullCacheService()

    if l2_enabled and l2 is None:
        raise ValueError("L2 cache is enabled but no remote tier was provided")

    l1: MemoryCacheService | None = None
    if l1_enabled:
        l1 = MemoryCacheService(
            maxsize=settings.l1.max_items,
            default_ttl=settings.l1.ttl,
        )

    if l1 is not None and l2 is not None:
        logger.info(
            "Using hybrid L1/L2 cache (consistency: %s)", settings.consistency.value
        )
        return HybridCacheService(l1, l2, settings.consistency, channel)

    if l1 is not None:
        if settings.consistency is CacheConsistency.STRONG:
            logger.warning(
                "Strong consistency needs the L2 cache for invalidation broadcast; "
                "L1 entries will only expire by TTL"
            )
        logger.info("Using L1 memory cache only (max items: %d)", settings.l1.max_items)
        return l1

    logger.info("Using L2 Redis cache only")
    assert l2 is not None
    return l2


async def bootstrap(
    settings: CacheSettings,
    redis_client: Redis | None = None,
    channel: IInvalidationChannel | None = None,
) -> CacheRuntime:
    """Build and start the cache subsystem.

    Args:
        settings: Cache settings, read once at startup.
        redis_client: Existing client to use instead of creating one
            from the connection string. The caller keeps ownership.
        channel: Invalidation channel to use instead of Redis pub/sub.

    Returns:
        The running CacheRuntime.

    Raises:
        CacheUnavailableError: If the L2 tier is enabled and Redis is
            unreachable.
    """
    client: Redis | None = None
    owns_client = False
    l2: ICacheService | None = None

    if settings.l2.enabled:
        client = redis_client
        if client is None:
            client = create_redis_client(settings.l2)
            owns_client = True
        try:
            await connect_redis(client, settings.l2)
        except Exception:
            if owns_client:
                await client.aclose()
            raise
        l2 = RedisCacheService.from_settings(client, settings.l2)

    hybrid_strong = (
        settings.l1.enabled
        and settings.l2.enabled
        and settings.consistency is CacheConsistency.STRONG
    )
    if hybrid_strong and channel is None:
        assert client is not None
        channel = RedisInvalidationChannel(client, settings.l2.invalidation_channel)
    elif not hybrid_strong:
        channel = None

    service = select_cache_service(settings, l2=l2, channel=channel)
    if channel is not None:
        await channel.start()

    return CacheRuntime(
        settings=settings,
        service=service,
        redis_client=client,
        channel=channel,
        owns_client=owns_client,
        loop=asyncio.get_running_loop(),
    )
