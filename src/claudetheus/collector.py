import asyncio
import time
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable

import structlog

from claudetheus.analytics import (
    TimeRange,
    compute_historical,
    empty_historical,
    range_cutoff,
)
from claudetheus.cache import SnapshotCache
from claudetheus.config import Config
from claudetheus.metrics import MetricsUpdater
from claudetheus.models import HistoricalAnalytics, Snapshot, UsageRecord
from claudetheus.reader import UsageReader
from claudetheus.snapshot import compute_snapshot

logger = structlog.get_logger()


def _utcnow() -> "datetime":
    return datetime.now(timezone.utc)


class Collector:
    """
    Collector is responsible for keeping the live usage snapshot
    fresh and answering historical queries. It owns the refresh
    cycle: periodic refreshes, explicit refreshes and debounced
    change notifications all funnel into a single in-flight
    refresh task, whose result replaces the cached snapshot
    in one swap.
    """

    def __init__(
        self,
        reader: "UsageReader",
        cache: "SnapshotCache",
        metrics_updater: "MetricsUpdater",
        config: "Config",
        clock: "Callable[[], datetime]" = _utcnow,
    ) -> "None":
        self._reader = reader
        self._cache = cache
        self._metrics = metrics_updater
        self._config = config
        self._clock = clock
        self._refresh_task: "asyncio.Task[Snapshot] | None" = None
        self._debounce_handle: "asyncio.TimerHandle | None" = None
        # set when a change arrives while a refresh is already running
        self._rerun_requested: "bool" = False
        self._stop_event: "asyncio.Event" = asyncio.Event()

    @property
    def latest_record(self) -> "UsageRecord | None":
        """
        newest accepted record of the cached snapshot, for
        completion notifications.
        """
        current = self._cache.current
        if current is None:
            return None
        return current.snapshot.latest_record

    def get_snapshot_nowait(self) -> "Snapshot":
        """
        returns the cached snapshot without touching the disk.
        """
        return self._cache.snapshot_or_empty(self._clock())

    async def get_snapshot(self) -> "Snapshot":
        """
        returns the cached snapshot, refreshing it first if the
        TTL has expired.
        """
        if self._cache.is_stale(self._clock()):
            return await self.refresh()
        return self.get_snapshot_nowait()

    async def refresh(self) -> "Snapshot":
        """
        forces re-ingestion. Callers arriving while a refresh is
        running wait for that one instead of starting another.
        """
        task = self._ensure_refresh_task()
        # a cancelled caller must not cancel the shared refresh
        return await asyncio.shield(task)

    def request_refresh(self) -> "None":
        """
        entry point for file change notifications. Bursts within
        the debounce window collapse into one refresh.
        """
        if self._debounce_handle is not None:
            return

        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(
            self._config.debounce_seconds, self._fire_debounced_refresh
        )

    def _fire_debounced_refresh(self) -> "None":
        self._debounce_handle = None
        task = self._refresh_task
        if task is not None and not task.done():
            # the running refresh may have listed files before the change
            self._rerun_requested = True
            return
        self._ensure_refresh_task()

    def _ensure_refresh_task(self) -> "asyncio.Task[Snapshot]":
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._refresh_once())
            task.add_done_callback(self._on_refresh_done)
            self._refresh_task = task
        return task

    def _on_refresh_done(self, task: "asyncio.Task[Snapshot]") -> "None":
        if self._rerun_requested and not self._stop_event.is_set():
            self._rerun_requested = False
            logger.debug("refresh_rerun")
            self._ensure_refresh_task()

    async def _refresh_once(self) -> "Snapshot":
        now = self._clock()
        cycle_start = time.monotonic()
        cutoff = now - timedelta(days=self._config.lookback_days)

        try:
            records = await self._reader.read_records(
                cutoff, self._config.snapshot_max_entries
            )
            snapshot = compute_snapshot(records, now)

        except Exception:
            # keep serving the last good snapshot
            logger.exception("refresh_failed", root=str(self._reader.root))
            self._metrics.inc_refresh_error()
            return self._cache.snapshot_or_empty(now)

        self._cache.swap(snapshot, now)
        self._metrics.update_snapshot(snapshot)
        self._metrics.observe_refresh_duration(time.monotonic() - cycle_start)
        self._metrics.set_last_refresh_success(time.time())

        logger.info(
            "snapshot_refreshed",
            records=snapshot.messages_count,
            tokens_today=snapshot.tokens_today,
            cost_today=round(snapshot.cost_today, 4),
        )
        return snapshot

    async def get_historical(
        self,
        time_range: "TimeRange",
        tz: "tzinfo" = timezone.utc,
    ) -> "HistoricalAnalytics":
        """
        re-reads the logs for the range and builds the analytics.
        Never served from the snapshot cache.
        """
        cutoff = range_cutoff(time_range, self._clock())
        logger.info(
            "historical_requested",
            time_range=time_range.value,
            cutoff=cutoff.isoformat() if cutoff else None,
        )

        try:
            records = await self._reader.read_records(
                cutoff, self._config.historical_max_entries
            )
            return compute_historical(
                records, time_range, top_n=self._config.top_n, tz=tz
            )
        except Exception:
            logger.exception("historical_failed", time_range=time_range.value)
            return empty_historical(time_range)

    def stop(self) -> "None":
        """
        signals the refresh loop to stop after the current cycle.
        """
        self._stop_event.set()

    async def close(self) -> "None":
        """
        drops any pending debounced refresh and waits for an
        in-flight one to finish.
        """
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

        self._rerun_requested = False
        task = self._refresh_task
        if task is not None and not task.done():
            await task

    async def run(self) -> "None":
        """
        runs the periodic refresh loop. Runs until stop() is called.
        """
        while not self._stop_event.is_set():
            logger.debug("refresh_cycle_start")
            await self.refresh()

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._config.refresh_interval
                )
            except TimeoutError:
                pass
