"""Tests for InvalidationTracker."""

from rxcache.core.services.invalidation_tracker import InvalidationTracker


class TestInvalidationTracker:
    """Tests for InvalidationTracker."""

    def test_untouched_key_is_current(self) -> None:
        tracker = InvalidationTracker()
        snapshot = tracker.begin()

        assert tracker.is_current("patients:42", snapshot)

    def test_invalidated_key_is_stale(self) -> None:
        tracker = InvalidationTracker()
        snapshot = tracker.begin()

        tracker.record("patients:42")

        assert not tracker.is_current("patients:42", snapshot)
        assert tracker.is_current("patients:7", snapshot)

    def test_prefix_covers_keys(self) -> None:
        tracker = InvalidationTracker()
        snapshot = tracker.begin()

        tracker.record("orders:*")

        assert not tracker.is_current("orders:1", snapshot)
        assert tracker.is_current("patients:1", snapshot)

    def test_invalidation_before_snapshot_ignored(self) -> None:
        tracker = InvalidationTracker()
        tracker.begin()
        tracker.record("k")

        later = tracker.begin()

        assert tracker.is_current("k", later)

    def test_history_cleared_when_idle(self) -> None:
        tracker = InvalidationTracker()
        first = tracker.begin()
        tracker.record("k")
        tracker.finish(first)

        assert tracker.pending == 0
        assert tracker._keys == {}

    def test_history_kept_while_any_load_pending(self) -> None:
        """Test an overlapping load still sees the invalidation."""
        tracker = InvalidationTracker()
        first = tracker.begin()
        second = tracker.begin()

        tracker.record("k")
        tracker.finish(first)

        assert not tracker.is_current("k", second)

    def test_no_history_without_pending_loads(self) -> None:
        tracker = InvalidationTracker()
        tracker.record("k")

        assert tracker._keys == {}
        assert tracker._prefixes == {}
