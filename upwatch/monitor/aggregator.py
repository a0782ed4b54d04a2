"""Aggregator — on-demand statistics over a trailing window.

Stateless and read-only: every call queries the store afresh. Two uptime
notions live here and must not be mixed up:

- reachability uptime (``summary``): share of checks whose status is up.
- SLA uptime (``uptime_by_latency``): share of checks whose latency is at
  or under the threshold, regardless of status.

Empty windows yield ``uptime_pct = 0.0`` and ``avg_latency_ms = None``.
Average latency only covers reachable checks; a down check's latency is
the time spent before the probe gave up and says nothing about the target.
Store read failures propagate as StoreReadError.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from .models import CheckRecord, SpeedRecord, SummaryStat, UptimeByLatency, utcnow
from .store import Collection, Order, TimeSeriesStore
from .targets import TargetRegistry

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MINUTES = 60
DEFAULT_LATENCY_THRESHOLD_MS = 250
DEFAULT_STATUS_PAGE_SIZE = 500
DEFAULT_SPEEDTEST_PAGE_SIZE = 100


def percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(100.0 * part / total, 2)


def mean_latency(records: list[CheckRecord]) -> float | None:
    if not records:
        return None
    return round(sum(r.latency_ms for r in records) / len(records), 2)


class Aggregator:
    """Derives uptime/latency statistics from the time-series store."""

    def __init__(
        self,
        store: TimeSeriesStore,
        registry: TargetRegistry,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
        latency_threshold_ms: int = DEFAULT_LATENCY_THRESHOLD_MS,
        status_page_size: int = DEFAULT_STATUS_PAGE_SIZE,
        speedtest_page_size: int = DEFAULT_SPEEDTEST_PAGE_SIZE,
    ) -> None:
        self.store = store
        self.registry = registry
        self.window_minutes = window_minutes
        self.latency_threshold_ms = latency_threshold_ms
        self.status_page_size = status_page_size
        self.speedtest_page_size = speedtest_page_size

    def _window(
        self, window_minutes: int | None, now: datetime | None,
    ) -> tuple[datetime, datetime, int]:
        minutes = self.window_minutes if window_minutes is None else window_minutes
        if minutes <= 0:
            raise ValueError(f"window must be positive, got {minutes} minutes")
        end = now or utcnow()
        return end - timedelta(minutes=minutes), end, minutes

    def _checks(
        self, target: str, window_minutes: int | None, now: datetime | None,
    ) -> tuple[list[CheckRecord], int]:
        start, end, minutes = self._window(window_minutes, now)
        records = self.store.query_range(
            Collection.CHECKS, start=start, end=end, order=Order.ASC, target=target,
        )
        return records, minutes

    # ── Recent records ───────────────────────────────────────────────────

    def status_snapshot(
        self, window_minutes: int | None = None, now: datetime | None = None,
    ) -> list[CheckRecord]:
        """Newest-first checks across all targets, capped at the page size."""
        start, end, _ = self._window(window_minutes, now)
        return self.store.query_range(
            Collection.CHECKS, start=start, end=end,
            limit=self.status_page_size, order=Order.DESC,
        )

    def recent_speed_tests(
        self, window_minutes: int | None = None, now: datetime | None = None,
    ) -> list[SpeedRecord]:
        """Newest-first speed tests within the window, capped at the page size."""
        start, end, _ = self._window(window_minutes, now)
        return self.store.query_range(
            Collection.SPEED_TESTS, start=start, end=end,
            limit=self.speedtest_page_size, order=Order.DESC,
        )

    # ── Per-target statistics ────────────────────────────────────────────

    def summary(
        self, target: str, window_minutes: int | None = None, now: datetime | None = None,
    ) -> SummaryStat:
        """Reachability uptime and mean latency of reachable checks."""
        records, _ = self._checks(target, window_minutes, now)
        up = [r for r in records if r.is_up]
        return SummaryStat(
            target=target,
            uptime_pct=percentage(len(up), len(records)),
            avg_latency_ms=mean_latency(up),
            total_checks=len(records),
        )

    def uptime_by_latency(
        self,
        target: str,
        window_minutes: int | None = None,
        threshold_ms: int | None = None,
        now: datetime | None = None,
    ) -> UptimeByLatency:
        """Share of checks with ``latency_ms <= threshold_ms``."""
        threshold = self.latency_threshold_ms if threshold_ms is None else threshold_ms
        records, minutes = self._checks(target, window_minutes, now)
        within = sum(1 for r in records if r.latency_ms <= threshold)
        return UptimeByLatency(
            target=target,
            uptime_pct=percentage(within, len(records)),
            total_checks=len(records),
            window_hours=minutes / 60,
        )

    def summaries(
        self, window_minutes: int | None = None, now: datetime | None = None,
    ) -> list[SummaryStat]:
        now = now or utcnow()
        return [self.summary(t, window_minutes, now) for t in self.registry]

    def uptimes_by_latency(
        self,
        window_minutes: int | None = None,
        threshold_ms: int | None = None,
        now: datetime | None = None,
    ) -> list[UptimeByLatency]:
        now = now or utcnow()
        return [
            self.uptime_by_latency(t, window_minutes, threshold_ms, now)
            for t in self.registry
        ]

    # ── Capacity ─────────────────────────────────────────────────────────

    def storage_footprint(self) -> dict[str, Any]:
        return {"size_bytes": self.store.size_bytes()}
