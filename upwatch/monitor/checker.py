"""Health checker — probes every registered target once per tick.

Probes run side by side on a small thread pool, so one slow or dead target
cannot hold up the rest of the tick. Every target yields exactly one record
per tick, and each record is stored on its own: a failed write is logged
and the remaining records are still appended.
"""

from __future__ import annotations

import logging
from concurrent.futures import CancelledError, ThreadPoolExecutor
from datetime import datetime

import httpx

from .models import CheckRecord
from .probes import DEFAULT_TIMEOUT_S, probe_target
from .store import StoreWriteError, TimeSeriesStore
from .targets import TargetRegistry

logger = logging.getLogger(__name__)

MAX_PROBE_WORKERS = 8


class HealthChecker:
    """Runs one reachability probe per target and persists the results."""

    def __init__(
        self,
        registry: TargetRegistry,
        store: TimeSeriesStore,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        expected_status: int = 200,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.timeout_s = timeout_s
        self.expected_status = expected_status
        self._transport = transport
        self._executor = ThreadPoolExecutor(
            max_workers=min(MAX_PROBE_WORKERS, len(registry)),
            thread_name_prefix="probe",
        )

    def run_all_checks(self, now: datetime | None = None) -> list[CheckRecord]:
        """Probe all targets; return this tick's records in registry order.

        Probes still queued when ``close()`` runs are dropped from the tick.
        """
        futures = [
            self._executor.submit(
                probe_target,
                target,
                timeout_s=self.timeout_s,
                expected_status=self.expected_status,
                transport=self._transport,
                now=now,
            )
            for target in self.registry
        ]
        records: list[CheckRecord] = []
        for target, future in zip(self.registry, futures):
            try:
                records.append(future.result())
            except CancelledError:
                logger.info("Probe for %s cancelled by shutdown", target)

        stored = 0
        for record in records:
            logger.debug(
                "[%s] %s - %s (%dms)",
                record.timestamp.isoformat(), record.target,
                record.status.value, record.latency_ms,
            )
            try:
                self.store.append_check(record)
                stored += 1
            except StoreWriteError:
                logger.warning("Failed to store check for %s", record.target, exc_info=True)

        up = sum(1 for r in records if r.is_up)
        logger.info("Check tick: %d/%d up, %d stored", up, len(records), stored)
        return records

    def close(self) -> None:
        """Stop the probe pool without waiting for in-flight probes."""
        self._executor.shutdown(wait=False, cancel_futures=True)
