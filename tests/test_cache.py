from datetime import datetime, timedelta

from claudetheus.cache import SnapshotCache
from claudetheus.models import Snapshot


class TestSnapshotCache:
    def test_empty_cache_is_stale(self, now: "datetime") -> "None":
        cache = SnapshotCache(ttl_seconds=60)
        assert cache.current is None
        assert cache.is_stale(now) is True

    def test_fresh_until_ttl(self, now: "datetime") -> "None":
        cache = SnapshotCache(ttl_seconds=60)
        cache.swap(Snapshot(computed_at=now), now)

        assert cache.is_stale(now + timedelta(seconds=60)) is False
        assert cache.is_stale(now + timedelta(seconds=61)) is True

    def test_swap_replaces_reference(self, now: "datetime") -> "None":
        cache = SnapshotCache()
        first = Snapshot(computed_at=now, tokens_today=1)
        second = Snapshot(computed_at=now, tokens_today=2)

        held = cache.swap(first, now)
        cache.swap(second, now + timedelta(seconds=1))

        # a reader holding the old entry still sees it unchanged
        assert held.snapshot is first
        assert cache.current is not None
        assert cache.current.snapshot is second

    def test_snapshot_or_empty(self, now: "datetime") -> "None":
        cache = SnapshotCache()
        assert cache.snapshot_or_empty(now) == Snapshot(computed_at=now)

        stored = Snapshot(computed_at=now, messages_count=3)
        cache.swap(stored, now)
        assert cache.snapshot_or_empty(now + timedelta(hours=1)) is stored
