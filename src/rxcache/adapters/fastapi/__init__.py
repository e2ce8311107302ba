"""FastAPI adapter for rxcache.

Example:
    from fastapi import Depends, FastAPI
    from rxcache import CacheSettings, cached, invalidates
    from rxcache.adapters.fastapi import cache_lifespan, create_health_router

    app = FastAPI(lifespan=cache_lifespan(CacheSettings.from_env()))
    app.include_router(create_health_router())

    @app.get("/api/v1/patients/{patient_id}")
    @cached(key="patients:{patient_id}")
    async def get_patient(patient_id: str) -> dict:
        return await repository.get(patient_id)
"""

from rxcache.adapters.fastapi.health import cache_health, create_health_router
from rxcache.adapters.fastapi.lifespan import (
    cache_lifespan,
    get_cache,
    get_cache_runtime,
    get_sync_cache,
)

__all__ = [
    "cache_health",
    "cache_lifespan",
    "create_health_router",
    "get_cache",
    "get_cache_runtime",
    "get_sync_cache",
]
