"""Retention pruner — drops time-series rows older than their horizon."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import utcnow
from .store import Collection, TimeSeriesStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PruneResult:
    cutoff: datetime
    checks_deleted: int
    speedtests_deleted: int = 0


class RetentionPruner:
    """Deletes checks older than ``retention``.

    Speed tests are pruned against their own horizon when
    ``speedtest_retention`` is set; None keeps them forever.
    """

    def __init__(
        self,
        store: TimeSeriesStore,
        retention: timedelta,
        speedtest_retention: timedelta | None = None,
    ) -> None:
        if retention <= timedelta(0):
            raise ValueError("retention must be positive")
        self.store = store
        self.retention = retention
        self.speedtest_retention = speedtest_retention

    def prune_once(self, now: datetime | None = None) -> PruneResult:
        now = now or utcnow()
        cutoff = now - self.retention
        checks = self.store.delete_older_than(Collection.CHECKS, cutoff)

        speedtests = 0
        if self.speedtest_retention is not None:
            speedtests = self.store.delete_older_than(
                Collection.SPEED_TESTS, now - self.speedtest_retention,
            )

        logger.info(
            "Pruned %d checks older than %s (%d speed tests)",
            checks, cutoff.isoformat(), speedtests,
        )
        return PruneResult(cutoff=cutoff, checks_deleted=checks, speedtests_deleted=speedtests)
