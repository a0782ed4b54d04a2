"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest

from upwatch.config import Settings
from upwatch.monitor.models import CheckRecord, CheckStatus, SpeedRecord
from upwatch.monitor.store import TimeSeriesStore
from upwatch.monitor.targets import TargetRegistry

TARGETS = ["https://a.example", "https://b.example", "https://c.example"]


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[TimeSeriesStore]:
    """TimeSeriesStore backed by a temp SQLite file."""
    s = TimeSeriesStore(tmp_path / "test_uptime.db")
    yield s
    s.close()


@pytest.fixture
def registry() -> TargetRegistry:
    return TargetRegistry(TARGETS)


@pytest.fixture
def make_check(now: datetime) -> Callable[..., CheckRecord]:
    def _make(
        target: str = TARGETS[0],
        status: CheckStatus = CheckStatus.UP,
        latency_ms: int = 100,
        minutes_ago: float = 1,
    ) -> CheckRecord:
        return CheckRecord(
            target=target,
            status=status,
            latency_ms=latency_ms,
            timestamp=now - timedelta(minutes=minutes_ago),
        )

    return _make


@pytest.fixture
def make_speed(now: datetime) -> Callable[..., SpeedRecord]:
    def _make(minutes_ago: float = 1, download: float = 100.0, upload: float = 20.0) -> SpeedRecord:
        return SpeedRecord(
            download_mbps=download,
            upload_mbps=upload,
            latency_ms=15,
            timestamp=now - timedelta(minutes=minutes_ago),
        )

    return _make


def _ok_handler(request: httpx.Request) -> httpx.Response:
    """Every probe succeeds; GETs return a small body for download tests."""
    if request.method == "GET":
        return httpx.Response(200, content=b"x" * 4096)
    return httpx.Response(200)


@pytest.fixture
def ok_transport() -> httpx.MockTransport:
    return httpx.MockTransport(_ok_handler)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a temp database with long intervals."""
    return Settings(
        targets=",".join(TARGETS),
        db_path=str(tmp_path / "engine.db"),
        check_interval=3600,
        speedtest_interval=3600,
        prune_interval=3600,
        speedtest_bytes=4096,
        speedtest_upload_bytes=4096,
        probe_timeout=2.0,
        speedtest_timeout=2.0,
    )
