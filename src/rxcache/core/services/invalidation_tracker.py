"""Guards read-through population against concurrent invalidation."""

import threading

from rxcache.core.entities.cache_key import WILDCARD, is_pattern


class InvalidationTracker:
    """Remembers invalidations that happen while loads are in flight.

    A load takes a snapshot before reading the source and checks it
    before writing the result back. If the key, or a prefix covering
    it, was invalidated in between, the loaded value may predate the
    invalidation and must not be cached.

    History is only kept while at least one load is pending, so the
    tracker stays empty on an idle instance.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._pending = 0
        self._keys: dict[str, int] = {}
        self._prefixes: dict[str, int] = {}

    def begin(self) -> int:
        """Start a load and return its snapshot."""
        with self._lock:
            self._pending += 1
            return self._generation

    def finish(self, snapshot: int) -> None:
        """End a load started with ``begin``."""
        with self._lock:
            self._pending -= 1
            if self._pending <= 0:
                self._pending = 0
                self._keys.clear()
                self._prefixes.clear()

    def record(self, key: str) -> None:
        """Record that ``key`` (or a ``prefix*`` pattern) was invalidated."""
        with self._lock:
            self._generation += 1
            if self._pending == 0:
                return
            if is_pattern(key):
                self._prefixes[key[: -len(WILDCARD)]] = self._generation
            else:
                self._keys[key] = self._generation

    def is_current(self, key: str, snapshot: int) -> bool:
        """Check that ``key`` was not invalidated since ``snapshot``."""
        with self._lock:
            if self._keys.get(key, -1) > snapshot:
                return False
            return not any(
                generation > snapshot and key.startswith(prefix)
                for prefix, generation in self._prefixes.items()
            )

    @property
    def pending(self) -> int:
        return self._pending
