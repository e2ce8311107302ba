"""FastAPI integration: startup/shutdown wiring and request access."""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

from rxcache.bootstrap import CacheRuntime, bootstrap
from rxcache.core.entities.cache_settings import CacheSettings
from rxcache.core.interfaces.cache_service import ICacheService
from rxcache.core.interfaces.invalidation_channel import IInvalidationChannel
from rxcache.core.services.sync_cache import SyncCacheService
from rxcache.decorators import configure

logger = logging.getLogger(__name__)

STATE_ATTR = "cache_runtime"


def cache_lifespan(
    settings: CacheSettings,
    redis_client: Any = None,
    channel: IInvalidationChannel | None = None,
    configure_decorators: bool = True,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build a FastAPI lifespan that owns the cache subsystem.

    The cache is bootstrapped before the app accepts requests; if the
    L2 tier is enabled and Redis is down, startup fails. On shutdown the
    invalidation channel is stopped and the Redis client closed.

    Example:
        app = FastAPI(lifespan=cache_lifespan(CacheSettings.from_env()))
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        runtime = await bootstrap(settings, redis_client=redis_client, channel=channel)
        setattr(app.state, STATE_ATTR, runtime)
        if configure_decorators:
            configure(runtime.service)
        logger.info("Cache subsystem started")
        try:
            yield
        finally:
            if configure_decorators:
                configure(None)
            await runtime.close()

    return lifespan


def get_cache_runtime(request: Request) -> CacheRuntime:
    """FastAPI dependency returning the running cache subsystem."""
    runtime = getattr(request.app.state, STATE_ATTR, None)
    if runtime is None:
        raise RuntimeError("Cache not started. Use cache_lifespan() on the app.")
    return runtime  # type: ignore[no-any-return]


def get_cache(request: Request) -> ICacheService:
    """FastAPI dependency returning the cache service."""
    return get_cache_runtime(request).service


def get_sync_cache(request: Request) -> SyncCacheService:
    """FastAPI dependency returning a blocking view of the cache.

    Meant for ``def`` (non-async) routes, which FastAPI runs in a
    worker thread.
    """
    return get_cache_runtime(request).sync()
