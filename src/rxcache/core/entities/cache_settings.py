"""Cache settings entities."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from enum import Enum
from typing import Any


class CacheConsistency(Enum):
    """Cache consistency modes.

    Neither mode provides perfect consistency. For zero tolerance of
    stale data, disable caching entirely.

    STRONG: Invalidations are broadcast to every instance over the
        Redis pub/sub channel. Stale window is network latency.
    EVENTUAL: Peer L1 entries expire by TTL. Stale window is up to the
        L1 TTL.
    """

    STRONG = "Strong"
    EVENTUAL = "Eventual"

    @classmethod
    def parse(cls, value: "str | CacheConsistency") -> "CacheConsistency":
        """Parse a consistency mode, case-insensitively.

        Raises:
            ValueError: If the value names no known mode.
        """
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Unknown cache consistency mode: {value!r}")


def _ttl_from_seconds(seconds: int) -> timedelta | None:
    if seconds <= 0:
        return None
    return timedelta(seconds=seconds)


@dataclass(frozen=True)
class LocalCacheSettings:
    """L1 in-memory cache settings.

    For EVENTUAL consistency keep ``ttl_seconds`` short (5-30 seconds).
    A TTL of 0 or less means entries never expire.
    """

    enabled: bool = False
    ttl_seconds: int = 30
    max_items: int = 10000

    @property
    def ttl(self) -> timedelta | None:
        """Default TTL, or None if infinite."""
        return _ttl_from_seconds(self.ttl_seconds)


@dataclass(frozen=True)
class RemoteCacheSettings:
    """L2 Redis cache settings.

    When enabled, Redis must be reachable at startup or the service
    refuses to start. After startup, Redis failures are logged and the
    cache degrades to a miss.
    """

    enabled: bool = False
    connection_string: str = "redis://localhost:6379/0"
    instance_name: str = "PrescriptionApi:"
    ttl_seconds: int = 300
    connect_timeout_ms: int = 5000
    operation_timeout_ms: int = 1000
    max_reconnect_backoff_ms: int = 5000
    reconnect_retries: int = 3
    invalidation_channel: str = "cache:invalidate"

    @property
    def ttl(self) -> timedelta | None:
        """Default TTL, or None if infinite."""
        return _ttl_from_seconds(self.ttl_seconds)

    @property
    def connect_timeout(self) -> float:
        return self.connect_timeout_ms / 1000

    @property
    def operation_timeout(self) -> float:
        return self.operation_timeout_ms / 1000

    @property
    def max_reconnect_backoff(self) -> float:
        return self.max_reconnect_backoff_ms / 1000


@dataclass(frozen=True)
class CacheSettings:
    """Process-wide cache configuration.

    Read once at startup and immutable afterwards. Describes which
    tiers are enabled, their TTLs and bounds, and the consistency mode.

    Example:
        settings = CacheSettings.from_mapping({
            "L1": {"Enabled": True, "TtlSeconds": 10},
            "L2": {"Enabled": True, "ConnectionString": "redis://redis:6379/0"},
            "Consistency": "Strong",
        })
    """

    l1: LocalCacheSettings = field(default_factory=LocalCacheSettings)
    l2: RemoteCacheSettings = field(default_factory=RemoteCacheSettings)
    consistency: CacheConsistency = CacheConsistency.STRONG

    def __post_init__(self) -> None:
        """Validate bounds."""
        if self.l1.max_items <= 0:
            raise ValueError("L1 max_items must be positive")
        if not isinstance(self.consistency, CacheConsistency):
            object.__setattr__(
                self, "consistency", CacheConsistency.parse(self.consistency)
            )

    @property
    def is_strong(self) -> bool:
        return self.consistency is CacheConsistency.STRONG

    @classmethod
    def from_mapping(cls, section: Mapping[str, Any]) -> "CacheSettings":
        """Build settings from a nested ``Cache`` configuration section.

        Keys are matched case-insensitively and without underscores, so
        both ``{"TtlSeconds": 5}`` and ``{"ttl_seconds": 5}`` work.

        Args:
            section: Mapping with optional ``L1``, ``L2`` and
                ``Consistency`` entries.

        Returns:
            The parsed settings.
        """
        normalized = _normalize_keys(section)
        l1 = _build(LocalCacheSettings, normalized.get("l1", {}))
        l2 = _build(RemoteCacheSettings, normalized.get("l2", {}))
        consistency = CacheConsistency.parse(
            normalized.get("consistency", CacheConsistency.STRONG)
        )
        return cls(l1=l1, l2=l2, consistency=consistency)

    @classmethod
    def from_env(
        cls,
        prefix: str = "CACHE",
        environ: Mapping[str, str] | None = None,
    ) -> "CacheSettings":
        """Build settings from environment variables.

        Variables use ``__`` as the section separator, for example
        ``CACHE__L1__ENABLED=true`` or ``CACHE__CONSISTENCY=Eventual``.
        """
        env = os.environ if environ is None else environ
        marker = f"{prefix}__"
        section: dict[str, Any] = {}
        for name, value in env.items():
            if not name.upper().startswith(marker):
                continue
            path = name[len(marker):].split("__")
            target = section
            for part in path[:-1]:
                target = target.setdefault(part, {})
            target[path[-1]] = value
        return cls.from_mapping(section)

    def with_overrides(self, **changes: Any) -> "CacheSettings":
        """Return a copy with top-level fields replaced."""
        return replace(self, **changes)


def _normalize(name: str) -> str:
    return name.replace("_", "").lower()


def _normalize_keys(mapping: Mapping[str, Any]) -> dict[str, Any]:
    return {_normalize(str(key)): value for key, value in mapping.items()}


def _build(settings_cls: type, raw: Mapping[str, Any]) -> Any:
    values = _normalize_keys(raw)
    kwargs: dict[str, Any] = {}
    for f in fields(settings_cls):
        key = _normalize(f.name)
        if key not in values:
            continue
        kwargs[f.name] = _coerce(values[key], type(getattr(settings_cls(), f.name)))
    return settings_cls(**kwargs)


def _coerce(value: Any, target: type) -> Any:
    if target is bool:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off", ""):
                return False
            raise ValueError(f"Invalid boolean setting: {value!r}")
        return bool(value)
    if target is int:
        return int(value)
    return str(value)
