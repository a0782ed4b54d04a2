"""Monitoring engine — probes, time-series store, pruning, aggregation."""

from .aggregator import Aggregator
from .checker import HealthChecker
from .engine import MonitorEngine
from .models import CheckRecord, CheckStatus, SpeedRecord, SummaryStat, UptimeByLatency
from .pruner import PruneResult, RetentionPruner
from .scheduler import MonitorScheduler, SchedulerStoppedError
from .speedtest import SpeedProber, SpeedTestError
from .store import (
    Collection,
    Order,
    SchemaInitError,
    StoreReadError,
    StoreWriteError,
    TimeSeriesStore,
)
from .targets import TargetRegistry
