"""Monitor scheduler — three independent periodic loops on one event loop.

Checks, speed tests and pruning each get their own asyncio task and interval.
The blocking work of every tick runs in a thread pool; a failed tick is
logged and the loop waits for its next turn. Coordination between the loops
happens only through the store.

Shutdown cancels the speed prober and the queued probes, then gives running
ticks ``shutdown_grace`` seconds to finish before the store goes away.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from .checker import HealthChecker
from .models import CheckRecord
from .pruner import RetentionPruner
from .speedtest import SpeedProber

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_GRACE_S = 5.0


class SchedulerStoppedError(RuntimeError):
    """Raised when work is requested after ``stop()``."""


class MonitorScheduler:
    """Runs checker, speed prober and pruner at their configured intervals.

    Lifecycle:
        scheduler = MonitorScheduler(checker, prober, pruner, ...)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        checker: HealthChecker,
        prober: SpeedProber,
        pruner: RetentionPruner,
        check_interval: float,
        speedtest_interval: float,
        prune_interval: float,
        shutdown_grace: float = DEFAULT_SHUTDOWN_GRACE_S,
    ) -> None:
        self.checker = checker
        self.prober = prober
        self.pruner = pruner
        self.intervals = {
            "checks": check_interval,
            "speedtest": speedtest_interval,
            "prune": prune_interval,
        }
        self.shutdown_grace = shutdown_grace
        self.tick_counts = {name: 0 for name in self.intervals}
        self.failure_counts = {name: 0 for name in self.intervals}
        self._executor = ThreadPoolExecutor(max_workers=3, thread_name_prefix="monitor")
        self._tasks: list[asyncio.Task[None]] = []
        self._in_flight: dict[Future[Any], str] = {}
        self._stop_event: asyncio.Event | None = None
        self._running = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def in_flight(self) -> list[str]:
        """Names of ticks whose worker thread has not returned yet."""
        return list(self._in_flight.values())

    async def start(self) -> None:
        """Launch the three loops. Each runs a first tick right away."""
        if self._running or self._stopped:
            return
        self._running = True
        self._stop_event = asyncio.Event()

        jobs: dict[str, Callable[[], Any]] = {
            "checks": self.checker.run_all_checks,
            "speedtest": self.prober.run_speed_test,
            "prune": self.pruner.prune_once,
        }
        for name, fn in jobs.items():
            task = asyncio.create_task(
                self._loop(name, fn, self.intervals[name]), name=f"monitor-{name}",
            )
            self._tasks.append(task)

        logger.info(
            "Monitor scheduler started (checks=%ss, speedtest=%ss, prune=%ss)",
            self.intervals["checks"], self.intervals["speedtest"], self.intervals["prune"],
        )

    async def stop(self) -> None:
        """Stop taking ticks and wind down the ones already running.

        The speed prober is cancelled and queued probes are dropped. Running
        ticks get ``shutdown_grace`` seconds; any still going after that are
        abandoned, and their outcome is logged when they end.
        """
        self._running = False
        self._stopped = True
        if self._stop_event is not None:
            self._stop_event.set()
        self.prober.cancel()
        self.checker.close()

        if self._tasks:
            _, pending = await asyncio.wait(self._tasks, timeout=self.shutdown_grace)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        for future, name in list(self._in_flight.items()):
            logger.warning(
                "Monitor %s tick still running after %.1fs; abandoning it",
                name, self.shutdown_grace,
            )
            future.add_done_callback(_log_abandoned(name))
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Monitor scheduler stopped")

    async def run_checks_now(self) -> list[CheckRecord]:
        """Run one check tick immediately (manual trigger)."""
        if self._stopped:
            raise SchedulerStoppedError("monitor is shutting down")
        return await self._run_tick("manual-checks", self.checker.run_all_checks)

    def _run_tick(self, name: str, fn: Callable[[], Any]) -> asyncio.Future[Any]:
        try:
            future = self._executor.submit(fn)
        except RuntimeError as e:
            raise SchedulerStoppedError("monitor is shutting down") from e
        self._in_flight[future] = name
        future.add_done_callback(lambda f: self._in_flight.pop(f, None))
        return asyncio.wrap_future(future)

    async def _loop(self, name: str, fn: Callable[[], Any], interval: float) -> None:
        assert self._stop_event is not None

        while self._running:
            try:
                await self._run_tick(name, fn)
                self.tick_counts[name] += 1
            except asyncio.CancelledError:
                break
            except Exception as e:
                if not self._running:
                    logger.info("Monitor %s tick ended by shutdown: %s", name, e)
                    break
                self.failure_counts[name] += 1
                logger.exception("Monitor %s tick failed", name)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                break
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break


def _log_abandoned(name: str) -> Callable[[Future[Any]], None]:
    def callback(future: Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Abandoned %s tick failed after shutdown: %s", name, exc)
        else:
            logger.info("Abandoned %s tick finished after shutdown", name)

    return callback
