"""Tests for MemoryCacheService."""

import asyncio
import threading
from dataclasses import dataclass
from datetime import date, timedelta

import pytest

from rxcache.infrastructure.backends.memory import MemoryCacheService


class TestMemoryCacheService:
    """Tests for the L1 in-memory cache."""

    @pytest.fixture
    def cache(self, clock) -> MemoryCacheService:
        """Create a cache for testing."""
        return MemoryCacheService(maxsize=100, default_ttl=timedelta(seconds=30), timer=clock)

    async def test_set_and_get(self, cache: MemoryCacheService) -> None:
        """Test basic set and get operations."""
        await cache.set("patients:1", {"name": "Jo"})
        assert await cache.get("patients:1") == {"name": "Jo"}

    async def test_get_missing_key(self, cache: MemoryCacheService) -> None:
        """Test getting a missing key returns None without raising."""
        assert await cache.get("nonexistent") is None
        assert await cache.try_get("nonexistent") == (False, None)

    async def test_try_get_hit(self, cache: MemoryCacheService) -> None:
        """Test try_get reports a hit with the value."""
        await cache.set("k", [1, 2, 3])
        assert await cache.try_get("k") == (True, [1, 2, 3])

    async def test_expired_entry_not_returned(self, cache: MemoryCacheService, clock) -> None:
        """Test an entry is absent once its TTL elapsed, without removal."""
        await cache.set("k", "v", ttl=timedelta(seconds=5))

        clock.advance(4.9)
        assert await cache.get("k") == "v"

        clock.advance(0.1)
        assert await cache.get("k") is None
        assert await cache.exists("k") is False

    async def test_default_ttl_applies(self, cache: MemoryCacheService, clock) -> None:
        """Test entries without explicit TTL use the configured default."""
        await cache.set("k", "v")
        clock.advance(29)
        assert await cache.exists("k") is True
        clock.advance(1)
        assert await cache.exists("k") is False

    async def test_infinite_default_ttl(self, clock) -> None:
        """Test a None default TTL keeps entries forever."""
        cache = MemoryCacheService(maxsize=10, default_ttl=None, timer=clock)
        await cache.set("k", "v")
        clock.advance(10**9)
        assert await cache.get("k") == "v"

    async def test_overwrite_replaces_value_and_expiry(
        self, cache: MemoryCacheService, clock
    ) -> None:
        """Test setting an existing key replaces both value and TTL."""
        await cache.set("k", "old", ttl=timedelta(seconds=1))
        await cache.set("k", "new", ttl=timedelta(seconds=60))
        clock.advance(30)
        assert await cache.get("k") == "new"

    async def test_zero_ttl_drops_previous_value(self, cache: MemoryCacheService) -> None:
        """Test an already-expired write does not leave the old value behind."""
        await cache.set("k", "old")
        await cache.set("k", "new", ttl=timedelta(0))
        assert await cache.get("k") is None

    async def test_none_is_not_stored(self, cache: MemoryCacheService) -> None:
        """Test that None values are never cached."""
        await cache.set("k", None)
        assert await cache.exists("k") is False

    async def test_hit_returns_a_copy(self, cache: MemoryCacheService) -> None:
        """Test mutating a returned value does not change the cached one."""
        await cache.set("patients:1", {"allergies": ["penicillin"]})

        value = await cache.get("patients:1")
        value["allergies"].append("latex")

        assert await cache.get("patients:1") == {"allergies": ["penicillin"]}

    async def test_values_stored_in_serialized_form(self, cache: MemoryCacheService) -> None:
        """Test dataclasses come back as dicts, as they do from Redis."""

        @dataclass
        class Patient:
            id: str
            birth_date: date

        await cache.set("patients:1", Patient("1", date(1980, 5, 17)))

        assert await cache.get("patients:1") == {"id": "1", "birth_date": date(1980, 5, 17)}

    async def test_unserializable_value_not_stored(self, cache: MemoryCacheService) -> None:
        """Test an unserializable write drops the stale value it replaces."""
        await cache.set("k", "old")

        await cache.set("k", {1, 2})

        assert await cache.exists("k") is False

    async def test_remove(self, cache: MemoryCacheService) -> None:
        """Test removing a key, and removing it again."""
        await cache.set("k", "v")
        await cache.remove("k")
        assert await cache.get("k") is None

        # Idempotent
        await cache.remove("k")
        await cache.remove("never-set")

    async def test_remove_by_prefix(self, cache: MemoryCacheService) -> None:
        """Test removing every key with a prefix."""
        await cache.set("orders:1", "a")
        await cache.set("orders:2", "b")
        await cache.set("patients:1", "c")

        removed = await cache.remove_by_prefix("orders:")

        assert removed == 2
        assert await cache.get("orders:1") is None
        assert await cache.get("orders:2") is None
        assert await cache.get("patients:1") == "c"

    async def test_pattern_key_cannot_be_stored(self, cache: MemoryCacheService) -> None:
        """Test a trailing-wildcard key is rejected for storage."""
        with pytest.raises(ValueError):
            await cache.set("orders:*", "x")

    async def test_lru_eviction(self, clock) -> None:
        """Test LRU eviction when maxsize is reached."""
        cache = MemoryCacheService(maxsize=3, default_ttl=timedelta(minutes=5), timer=clock)

        await cache.set("key1", "value1")
        await cache.set("key2", "value2")
        await cache.set("key3", "value3")

        # Access key1 to make it recently used
        await cache.get("key1")

        # Add key4, should evict key2 (least recently used)
        await cache.set("key4", "value4")

        assert await cache.get("key1") == "value1"
        assert await cache.get("key2") is None
        assert await cache.get("key3") == "value3"
        assert await cache.get("key4") == "value4"

    async def test_expired_entries_evicted_first(self, clock) -> None:
        """Test an expired entry is dropped before a live LRU one."""
        cache = MemoryCacheService(maxsize=2, default_ttl=timedelta(minutes=5), timer=clock)
        await cache.set("short", "a", ttl=timedelta(seconds=1))
        await cache.set("long", "b")
        clock.advance(2)

        await cache.set("new", "c")

        assert await cache.get("long") == "b"
        assert await cache.get("new") == "c"

    async def test_get_or_add_calls_loader_once(self, cache: MemoryCacheService) -> None:
        """Test read-through invokes the loader only on a miss."""
        calls = 0

        async def loader() -> dict:
            nonlocal calls
            calls += 1
            return {"id": 1}

        assert await cache.get_or_add("k", loader) == {"id": 1}
        assert await cache.get_or_add("k", loader) == {"id": 1}
        assert calls == 1

    async def test_get_or_add_sync_loader(self, cache: MemoryCacheService) -> None:
        """Test read-through accepts a plain callable."""
        assert await cache.get_or_add("k", lambda: "sync") == "sync"
        assert await cache.get("k") == "sync"

    async def test_get_or_add_loader_error_propagates(self, cache: MemoryCacheService) -> None:
        """Test loader failures reach the caller and nothing is cached."""

        async def loader() -> str:
            raise LookupError("patient not found")

        with pytest.raises(LookupError, match="patient not found"):
            await cache.get_or_add("k", loader)
        assert await cache.exists("k") is False

    def test_concurrent_writers(self) -> None:
        """Test that concurrent threads never corrupt the cache."""
        cache = MemoryCacheService(maxsize=50, default_ttl=None)
        errors: list[Exception] = []

        def worker(n: int) -> None:
            try:
                for i in range(200):
                    key = f"k:{(n * 200 + i) % 80}"
                    cache.set_nowait(key, i)
                    cache.get_nowait(key)
                    if i % 10 == 0:
                        cache.remove_by_prefix_nowait("k:1")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) <= 50

    async def test_concurrent_tasks(self, cache: MemoryCacheService) -> None:
        """Test many tasks reading and writing the same keys."""

        async def worker(n: int) -> None:
            for i in range(50):
                await cache.set(f"k:{i % 5}", n)
                await cache.get(f"k:{i % 5}")

        await asyncio.gather(*(worker(n) for n in range(10)))
        assert len(cache) == 5

    def test_len(self) -> None:
        """Test getting cache size."""
        cache = MemoryCacheService(maxsize=100)
        assert len(cache) == 0

    def test_maxsize_property(self) -> None:
        """Test maxsize property."""
        cache = MemoryCacheService(maxsize=500)
        assert cache.maxsize == 500
