from dataclasses import dataclass
from datetime import datetime, timedelta

from claudetheus.models import Snapshot
from claudetheus.snapshot import empty_snapshot


@dataclass(frozen=True, slots=True)
class CachedSnapshot:
    snapshot: "Snapshot"
    computed_at: "datetime"


class SnapshotCache:
    """
    SnapshotCache: holds the last computed snapshot with a
    time-to-live.

    A refresh publishes a brand new CachedSnapshot by swapping
    the reference, so readers see either the old or the new
    snapshot and never a partially updated one.
    """

    def __init__(self, ttl_seconds: "float" = 60) -> "None":
        self._ttl: "timedelta" = timedelta(seconds=ttl_seconds)
        self._current: "CachedSnapshot | None" = None

    @property
    def current(self) -> "CachedSnapshot | None":
        return self._current

    def is_stale(self, now: "datetime") -> "bool":
        """
        True when nothing is cached yet or the cached
        snapshot is older than the TTL.
        """
        current = self._current
        if current is None:
            return True
        return now - current.computed_at > self._ttl

    def swap(self, snapshot: "Snapshot", computed_at: "datetime") -> "CachedSnapshot":
        entry = CachedSnapshot(snapshot=snapshot, computed_at=computed_at)
        self._current = entry
        return entry

    def snapshot_or_empty(self, now: "datetime") -> "Snapshot":
        current = self._current
        if current is None:
            return empty_snapshot(now)
        return current.snapshot
