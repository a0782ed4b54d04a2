"""Monitor engine — builds every component from one Settings value.

Startup order: registry, store schema, workers, scheduler. Anything that
fails before ``start()`` is a startup failure and must stop the process.
Shutdown stops the scheduler first, then closes the store.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

import httpx

from ..config import Settings
from .aggregator import Aggregator
from .checker import HealthChecker
from .pruner import RetentionPruner
from .scheduler import MonitorScheduler
from .speedtest import SpeedProber
from .store import TimeSeriesStore
from .targets import TargetRegistry

logger = logging.getLogger(__name__)


class MonitorEngine:
    """Owns the store, the periodic workers and the aggregator."""

    def __init__(
        self,
        settings: Settings,
        registry: TargetRegistry,
        store: TimeSeriesStore,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.store = store

        self.checker = HealthChecker(
            registry,
            store,
            timeout_s=settings.probe_timeout,
            expected_status=settings.expected_status,
            transport=transport,
        )
        self.prober = SpeedProber(
            store,
            download_bytes=settings.speedtest_bytes,
            upload_bytes=settings.speedtest_upload_bytes,
            timeout_s=settings.speedtest_timeout,
            download_url=settings.speedtest_download_url,
            upload_url=settings.speedtest_upload_url,
            latency_url=settings.speedtest_latency_url,
            transport=transport,
        )
        speedtest_retention = (
            timedelta(days=settings.speedtest_retention_days)
            if settings.speedtest_retention_days > 0 else None
        )
        self.pruner = RetentionPruner(
            store,
            retention=timedelta(days=settings.retention_days),
            speedtest_retention=speedtest_retention,
        )
        self.aggregator = Aggregator(
            store,
            registry,
            window_minutes=settings.recent_minutes,
            latency_threshold_ms=settings.latency_threshold_ms,
            status_page_size=settings.status_page_size,
            speedtest_page_size=settings.speedtest_page_size,
        )
        self.scheduler = MonitorScheduler(
            self.checker,
            self.prober,
            self.pruner,
            check_interval=settings.check_interval,
            speedtest_interval=settings.speedtest_interval,
            prune_interval=settings.prune_interval,
            shutdown_grace=settings.shutdown_grace,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.BaseTransport | None = None,
    ) -> MonitorEngine:
        """Build the engine. Raises ValueError / SchemaInitError on bad setup."""
        if settings.targets_file:
            registry = TargetRegistry.from_yaml(Path(settings.targets_file))
        else:
            registry = TargetRegistry.from_string(settings.targets)
        store = TimeSeriesStore(settings.db_path)
        logger.info("Time-series store ready at %s", store.db_path)
        return cls(settings, registry, store, transport=transport)

    async def start(self) -> None:
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        self.store.close()
        logger.info("Monitor engine stopped")
