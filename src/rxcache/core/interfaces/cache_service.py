"""Cache service interface."""

from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

# Zero-argument loader returning the value directly or as an awaitable
Loader = Callable[[], T | Awaitable[T]]


class ICacheService(Protocol):
    """Contract shared by every cache variant.

    The local, remote, hybrid and null caches all implement this
    protocol, so callers never special-case the configured tiers.
    Methods are async so the same call works for in-memory and
    network-bound tiers. None is never cached: a stored None is
    indistinguishable from a miss.
    """

    async def get(self, key: str) -> Any | None:
        """Retrieve a cached value.

        Args:
            key: The logical cache key.

        Returns:
            The cached value, or None if absent or expired.
        """
        ...

    async def try_get(self, key: str) -> tuple[bool, Any | None]:
        """Retrieve a cached value with an explicit hit flag.

        Returns:
            ``(True, value)`` on a hit, ``(False, None)`` on a miss.
        """
        ...

    async def set(
        self,
        key: str,
        value: Any,
        ttl: timedelta | None = None,
    ) -> None:
        """Store a value.

        Args:
            key: The logical cache key. Must not be a pattern.
            value: The value to store.
            ttl: Optional time-to-live. If None, uses the tier default.
        """
        ...

    async def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op."""
        ...

    async def remove_by_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``.

        Returns:
            Number of entries removed, as far as the tier can tell.
        """
        ...

    async def exists(self, key: str) -> bool:
        """Check if a live entry exists for ``key``."""
        ...

    async def get_or_add(
        self,
        key: str,
        loader: Loader[T],
        ttl: timedelta | None = None,
    ) -> T:
        """Read-through helper.

        On a miss, invokes ``loader`` once, caches a non-None result and
        returns it. Loader exceptions propagate unmodified.
        """
        ...
