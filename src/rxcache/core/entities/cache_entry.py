"""Cache entry entity."""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any


class CacheTier(Enum):
    """Tier that owns a cache entry."""

    L1 = "L1"
    L2 = "L2"


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cache entry value object.

    ``expires_at`` is an absolute reading of the owning tier's timer,
    or None when the entry never expires. An entry past its expiry is
    treated as absent whether or not it has been physically removed.
    """

    key: str
    value: Any
    tier: CacheTier
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired at timer reading ``now``."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at

    @classmethod
    def create(
        cls,
        key: str,
        value: Any,
        tier: CacheTier,
        now: float,
        ttl: timedelta | None = None,
    ) -> "CacheEntry":
        """Factory method to create a new cache entry.

        Args:
            key: The cache key.
            value: The value to cache.
            tier: The tier storing the entry.
            now: Current timer reading.
            ttl: Optional time-to-live. None means no expiry.

        Returns:
            A new CacheEntry instance.
        """
        expires_at = None if ttl is None else now + ttl.total_seconds()
        return cls(key=key, value=value, tier=tier, expires_at=expires_at)
