"""Tests for SyncCacheService."""

import asyncio
import concurrent.futures
import threading
from datetime import timedelta

import pytest

from rxcache.core.entities import CacheConsistency
from rxcache.core.services.hybrid_cache import HybridCacheService
from rxcache.core.services.sync_cache import SyncCacheService
from rxcache.infrastructure.backends.memory import MemoryCacheService
from rxcache.infrastructure.backends.redis import RedisCacheService


class TestSyncCacheService:
    """Tests for the blocking facade, driven from worker threads."""

    @pytest.fixture
    def cache(self, fake_redis) -> HybridCacheService:
        return HybridCacheService(
            MemoryCacheService(maxsize=100),
            RedisCacheService(fake_redis, instance_name="Rx:"),
            CacheConsistency.EVENTUAL,
        )

    @pytest.fixture
    async def sync_cache(self, cache: HybridCacheService) -> SyncCacheService:
        return SyncCacheService(cache, asyncio.get_running_loop(), timeout=5)

    async def test_set_and_get(self, sync_cache: SyncCacheService) -> None:
        await asyncio.to_thread(
            sync_cache.set, "patients:42", {"id": "42"}, timedelta(seconds=10)
        )

        assert await asyncio.to_thread(sync_cache.get, "patients:42") == {"id": "42"}
        assert await asyncio.to_thread(sync_cache.try_get, "patients:42") == (
            True,
            {"id": "42"},
        )
        assert await asyncio.to_thread(sync_cache.exists, "patients:42")

    async def test_writes_visible_to_async_callers(
        self, sync_cache: SyncCacheService, cache: HybridCacheService
    ) -> None:
        await asyncio.to_thread(sync_cache.set, "patients:42", "Jo")
        assert await cache.get("patients:42") == "Jo"

    async def test_remove(self, sync_cache: SyncCacheService) -> None:
        await asyncio.to_thread(sync_cache.set, "k", "v")
        await asyncio.to_thread(sync_cache.remove, "k")

        assert await asyncio.to_thread(sync_cache.get, "k") is None

    async def test_remove_by_prefix(self, sync_cache: SyncCacheService) -> None:
        await asyncio.to_thread(sync_cache.set, "orders:1", 1)
        await asyncio.to_thread(sync_cache.set, "orders:2", 2)

        assert await asyncio.to_thread(sync_cache.remove_by_prefix, "orders:") == 2
        assert not await asyncio.to_thread(sync_cache.exists, "orders:1")

    async def test_get_or_add_runs_blocking_loader_off_loop(
        self, sync_cache: SyncCacheService
    ) -> None:
        """Test the loader runs once, and not on the event loop thread."""
        loop_thread = threading.get_ident()
        loader_threads: list[int] = []

        def load_patient() -> dict:
            loader_threads.append(threading.get_ident())
            return {"id": "42"}

        first = await asyncio.to_thread(sync_cache.get_or_add, "patients:42", load_patient)
        second = await asyncio.to_thread(sync_cache.get_or_add, "patients:42", load_patient)

        assert first == second == {"id": "42"}
        assert len(loader_threads) == 1
        assert loader_threads[0] != loop_thread

    async def test_loader_error_propagates(self, sync_cache: SyncCacheService) -> None:
        def load_patient() -> dict:
            raise LookupError("patient not found")

        with pytest.raises(LookupError, match="patient not found"):
            await asyncio.to_thread(sync_cache.get_or_add, "patients:42", load_patient)

    async def test_call_on_loop_thread_raises(self, sync_cache: SyncCacheService) -> None:
        """Test blocking on the loop's own thread is refused instead of deadlocking."""
        with pytest.raises(RuntimeError, match="event loop thread"):
            sync_cache.get("k")

    async def test_timeout(self, cache: HybridCacheService, monkeypatch) -> None:
        sync_cache = SyncCacheService(cache, asyncio.get_running_loop(), timeout=0.05)

        async def hang(key: str) -> None:
            await asyncio.sleep(10)

        monkeypatch.setattr(cache, "get", hang)

        with pytest.raises(concurrent.futures.TimeoutError):
            await asyncio.to_thread(sync_cache.get, "k")
