"""No-op cache used when every tier is disabled."""

import inspect
from datetime import timedelta
from typing import Any, TypeVar

from rxcache.core.interfaces.cache_service import Loader

T = TypeVar("T")


class NullCacheService:
    """Cache that stores nothing.

    Every read misses and ``get_or_add`` always calls the loader, so
    callers behave the same whether caching is on or off.
    """

    async def get(self, key: str) -> Any | None:
        return None

    async def try_get(self, key: str) -> tuple[bool, Any | None]:
        return False, None

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        pass

    async def remove(self, key: str) -> None:
        pass

    async def remove_by_prefix(self, prefix: str) -> int:
        return 0

    async def exists(self, key: str) -> bool:
        return False

    async def get_or_add(
        self,
        key: str,
        loader: Loader[T],
        ttl: timedelta | None = None,
    ) -> T:
        value = loader()
        if inspect.isawaitable(value):
            value = await value
        return value  # type: ignore[return-value]
