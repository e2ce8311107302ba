"""Cache health reporting.

Redis is required at startup, but afterwards an outage only degrades
the service: the health check reports ``Degraded`` rather than
``Unhealthy`` while requests keep flowing without the L2 tier.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends

from rxcache.adapters.fastapi.lifespan import get_cache_runtime
from rxcache.bootstrap import CacheRuntime

logger = logging.getLogger(__name__)

HEALTHY = "Healthy"
DEGRADED = "Degraded"
DISABLED = "Disabled"


async def cache_health(runtime: CacheRuntime) -> dict[str, Any]:
    """Report the cache subsystem status. Never raises."""
    settings = runtime.settings
    if not settings.l1.enabled and not settings.l2.enabled:
        return {"status": DISABLED, "l1": False, "l2": "disabled"}

    status = HEALTHY
    l2_status = "disabled"
    if runtime.redis_client is not None:
        try:
            await asyncio.wait_for(
                runtime.redis_client.ping(),
                timeout=settings.l2.operation_timeout,
            )
            l2_status = "healthy"
        except Exception as e:
            logger.warning("Redis health check failed: %s", e)
            l2_status = "unreachable"
            status = DEGRADED

    report: dict[str, Any] = {
        "status": status,
        "l1": settings.l1.enabled,
        "l2": l2_status,
        "consistency": settings.consistency.value,
    }
    stats = getattr(runtime.service, "stats", None)
    if stats is not None:
        report["stats"] = stats
    return report


def create_health_router(path: str = "/health/cache") -> APIRouter:
    """Router exposing the cache health report."""
    router = APIRouter(tags=["health"])

    @router.get(path)
    async def health(runtime: CacheRuntime = Depends(get_cache_runtime)) -> dict[str, Any]:
        return await cache_health(runtime)

    return router
