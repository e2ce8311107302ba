"""Pytest configuration for rxcache tests."""

import asyncio
import re
from collections import Counter
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePubSub:
    """In-memory stand-in for redis.asyncio.client.PubSub."""

    def __init__(self, server: "FakeRedis") -> None:
        self._server = server
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.channels: set[str] = set()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        self._server.check("subscribe")
        self.channels.update(channels)
        if self not in self._server.subscribers:
            self._server.subscribers.append(self)

    async def unsubscribe(self, *channels: str) -> None:
        self.channels.difference_update(channels)

    async def get_message(
        self,
        ignore_subscribe_messages: bool = False,
        timeout: float = 0.0,
    ) -> dict[str, Any] | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def aclose(self) -> None:
        self.closed = True
        if self in self._server.subscribers:
            self._server.subscribers.remove(self)

    def deliver(self, channel: str, data: bytes) -> bool:
        if channel not in self.channels:
            return False
        self._queue.put_nowait({"type": "message", "channel": channel, "data": data})
        return True


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client.

    Implements the commands the cache uses, counts calls per command,
    and fails every command while ``failing`` is set.
    """

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock or FakeClock()
        self.store: dict[str, tuple[bytes, float | None]] = {}
        self.calls: Counter[str] = Counter()
        self.subscribers: list[FakePubSub] = []
        self.failing = False
        self.closed = False

    def check(self, command: str) -> None:
        self.calls[command] += 1
        if self.failing:
            raise RedisConnectionError("Connection refused")

    def _live(self, name: str) -> bytes | None:
        item = self.store.get(name)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self.clock() >= expires_at:
            del self.store[name]
            return None
        return value

    async def get(self, name: str) -> bytes | None:
        self.check("get")
        return self._live(name)

    async def set(
        self,
        name: str,
        value: bytes,
        ex: int | None = None,
        px: int | None = None,
    ) -> bool:
        self.check("set")
        expires_at = None
        if px is not None:
            expires_at = self.clock() + px / 1000
        elif ex is not None:
            expires_at = self.clock() + ex
        self.store[name] = (value, expires_at)
        return True

    async def delete(self, *names: str) -> int:
        self.check("delete")
        return sum(1 for name in names if self.store.pop(name, None) is not None)

    async def exists(self, *names: str) -> int:
        self.check("exists")
        return sum(1 for name in names if self._live(name) is not None)

    async def eval(self, script: str, numkeys: int, *args: Any) -> int:
        self.check("eval")
        pattern = args[0]
        # Supports the "<escaped prefix>*" patterns the cache sends
        prefix = re.sub(r"\\(.)", r"\1", pattern[:-1])
        matching = [name for name in self.store if name.startswith(prefix)]
        for name in matching:
            del self.store[name]
        return len(matching)

    async def publish(self, channel: str, data: bytes) -> int:
        self.check("publish")
        return sum(1 for sub in list(self.subscribers) if sub.deliver(channel, data))

    def pubsub(self) -> FakePubSub:
        return FakePubSub(self)

    async def ping(self) -> bool:
        self.check("ping")
        return True

    async def aclose(self) -> None:
        self.closed = True

    def raw_keys(self) -> list[str]:
        return [name for name in list(self.store) if self._live(name) is not None]


@pytest.fixture
def clock() -> FakeClock:
    """A manually advanced clock."""
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    """A fake Redis client sharing the test clock."""
    return FakeRedis(clock)


@pytest.fixture(autouse=True)
def reset_decorator_config():
    """Reset decorator configuration before each test."""
    import rxcache.decorators

    original_service = rxcache.decorators._cache_service

    yield

    rxcache.decorators._cache_service = original_service


async def wait_until(predicate: Any, timeout: float = 1.0) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return bool(predicate())


@pytest.fixture
def eventually():
    """Expose ``wait_until`` to tests."""
    return wait_until
