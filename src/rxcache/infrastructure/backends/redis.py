"""Redis L2 cache implementation.

Startup: Redis must be reachable. ``connect_redis`` pings the server
and raises ``CacheUnavailableError`` when it cannot, so the service
refuses to start.

Runtime: every Redis failure is logged and handled as a miss or a
no-op. The client reconnects with exponential backoff on its own; a
cache outage only makes requests slower.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import TYPE_CHECKING, Any, TypeVar

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from rxcache.core.entities.cache_key import CacheKey, as_pattern
from rxcache.core.interfaces.cache_service import Loader
from rxcache.core.interfaces.serializer import ISerializer
from rxcache.infrastructure.serializers.json import JsonSerializer, SerializationError

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from rxcache.core.entities.cache_settings import RemoteCacheSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Scans and deletes every key matching ARGV[1] in one script run.
# Redis executes a script atomically, so no write interleaves with it.
DELETE_BY_PATTERN_SCRIPT = """
local cursor = "0"
local deleted = 0
repeat
    local result = redis.call("SCAN", cursor, "MATCH", ARGV[1], "COUNT", 500)
    cursor = result[1]
    local keys = result[2]
    if #keys > 0 then
        deleted = deleted + redis.call("DEL", unpack(keys))
    end
until cursor == "0"
return deleted
"""

_GLOB_SPECIAL = "\\*?[]"


class CacheUnavailableError(Exception):
    """Raised at startup when the Redis backing store is unreachable."""

    pass


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so ``text`` matches literally."""
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in text)


def create_redis_client(settings: RemoteCacheSettings) -> Redis:
    """Create the Redis client described by ``settings``.

    The client retries failed commands with exponential backoff capped
    at ``max_reconnect_backoff``, reconnecting as needed.
    """
    retry = Retry(
        ExponentialBackoff(cap=settings.max_reconnect_backoff, base=0.05),
        settings.reconnect_retries,
    )
    return redis.from_url(  # type: ignore[no-untyped-call]
        settings.connection_string,
        decode_responses=False,
        socket_connect_timeout=settings.connect_timeout,
        socket_timeout=settings.operation_timeout,
        retry=retry,
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )


async def connect_redis(client: Redis, settings: RemoteCacheSettings) -> None:
    """Verify Redis is reachable at startup.

    Raises:
        CacheUnavailableError: If the ping fails or times out.
    """
    try:
        await asyncio.wait_for(client.ping(), timeout=settings.connect_timeout)
    except Exception as e:
        logger.critical(
            "Failed to connect to Redis at %s. Redis is required at startup "
            "when the L2 cache is enabled.",
            settings.connection_string,
        )
        raise CacheUnavailableError(
            f"Redis unavailable at {settings.connection_string}: {e}"
        ) from e
    logger.info("Connected to Redis at %s", settings.connection_string)


class RedisCacheService:
    """L2 distributed cache shared by every service instance.

    Values are JSON-serialized and stored under keys namespaced with
    the instance name. Each call is bounded by the operation timeout
    and honours task cancellation; since every write is one atomic
    Redis command, a cancelled call leaves no partial entry.

    The service does not own the client: whoever created it closes it.
    """

    def __init__(
        self,
        client: Redis,
        instance_name: str = "PrescriptionApi:",
        default_ttl: timedelta | None = timedelta(minutes=5),
        operation_timeout: float = 1.0,
        serializer: ISerializer | None = None,
    ) -> None:
        """Initialize the Redis cache.

        Args:
            client: Connected async Redis client.
            instance_name: Prefix namespacing every key.
            default_ttl: TTL used when ``set`` gets none. None means
                entries never expire.
            operation_timeout: Seconds before a Redis call is abandoned.
            serializer: Value serializer. Defaults to JSON.
        """
        self._client = client
        self._instance_name = instance_name
        self._default_ttl = default_ttl
        self._operation_timeout = operation_timeout
        self._serializer = serializer or JsonSerializer()

    @classmethod
    def from_settings(
        cls,
        client: Redis,
        settings: RemoteCacheSettings,
        serializer: ISerializer | None = None,
    ) -> RedisCacheService:
        return cls(
            client=client,
            instance_name=settings.instance_name,
            default_ttl=settings.ttl,
            operation_timeout=settings.operation_timeout,
            serializer=serializer,
        )

    @property
    def client(self) -> Redis:
        return self._client

    async def get(self, key: str) -> Any | None:
        return (await self.try_get(key))[1]

    async def try_get(self, key: str) -> tuple[bool, Any | None]:
        data = await self._call("get", key, lambda: self._client.get(self._full_key(key)))
        if data is None:
            return False, None

        try:
            value = self._serializer.deserialize(data)
        except Exception as e:
            logger.warning("Discarding unreadable L2 cache entry %s: %s", key, e)
            return False, None
        if value is None:
            return False, None
        return True, value

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        full_key = CacheKey(self._instance_name, key).storable()
        if value is None:
            return

        try:
            payload = self._serializer.serialize(value)
        except SerializationError as e:
            logger.error("Failed to serialize L2 cache key %s: %s", key, e)
            return

        effective_ttl = ttl if ttl is not None else self._default_ttl
        px = None
        if effective_ttl is not None:
            px = max(int(effective_ttl.total_seconds() * 1000), 1)
        await self._call("set", key, lambda: self._client.set(full_key, payload, px=px))

    async def remove(self, key: str) -> None:
        await self._call("remove", key, lambda: self._client.delete(self._full_key(key)))

    async def remove_by_prefix(self, prefix: str) -> int:
        pattern = escape_glob(f"{self._instance_name}{prefix}") + "*"
        deleted = await self._call(
            "remove_by_prefix",
            as_pattern(prefix),
            lambda: self._client.eval(DELETE_BY_PATTERN_SCRIPT, 0, pattern),
        )
        count = int(deleted or 0)
        logger.debug("L2 removed %d keys with prefix %s", count, prefix)
        return count

    async def exists(self, key: str) -> bool:
        result = await self._call(
            "exists", key, lambda: self._client.exists(self._full_key(key))
        )
        return bool(result)

    async def get_or_add(
        self,
        key: str,
        loader: Loader[T],
        ttl: timedelta | None = None,
    ) -> T:
        found, cached = await self.try_get(key)
        if found:
            return cached  # type: ignore[no-any-return]

        value = loader()
        if inspect.isawaitable(value):
            value = await value
        await self.set(key, value, ttl)
        return value  # type: ignore[return-value]

    async def ping(self) -> bool:
        """Check if Redis answers right now. Never raises."""
        result = await self._call("ping", "-", self._client.ping)
        return bool(result)

    def _full_key(self, key: str) -> str:
        return str(CacheKey(self._instance_name, key))

    async def _call(
        self,
        operation: str,
        key: str,
        command: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run one Redis command under the runtime failure contract.

        Returns the command result, or None if it failed or timed out.
        Cancellation propagates to the caller.
        """
        try:
            return await asyncio.wait_for(command(), timeout=self._operation_timeout)
        except Exception as e:
            logger.error(
                "L2 cache %s failed for key %s. Continuing without L2 cache: %s",
                operation,
                key,
                e,
            )
            return None
