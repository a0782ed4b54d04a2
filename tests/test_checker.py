"""Tests for reachability probes and the health checker."""

from __future__ import annotations

import time

import httpx
import pytest

from upwatch.monitor.checker import HealthChecker
from upwatch.monitor.models import CheckRecord, CheckStatus
from upwatch.monitor.probes import probe_target
from upwatch.monitor.store import Collection, StoreWriteError, TimeSeriesStore
from upwatch.monitor.targets import TargetRegistry


def _mixed_handler(request: httpx.Request) -> httpx.Response:
    """a: healthy, b: connection refused, c: 503."""
    host = request.url.host
    if host == "b.example":
        raise httpx.ConnectError("Connection refused", request=request)
    if host == "c.example":
        return httpx.Response(503)
    return httpx.Response(200)


# ── probe_target ─────────────────────────────────────────────────────────────


class TestProbeTarget:
    def test_up_on_expected_status(self, now) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.method)
            return httpx.Response(200)

        record = probe_target("https://a.example", transport=httpx.MockTransport(handler), now=now)
        assert record.status == CheckStatus.UP
        assert record.target == "https://a.example"
        assert record.timestamp == now
        assert record.latency_ms >= 0
        assert seen == ["HEAD"]

    def test_down_on_unexpected_status(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(500))
        record = probe_target("https://a.example", transport=transport)
        assert record.status == CheckStatus.DOWN

    def test_custom_expected_status(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(204))
        record = probe_target("https://a.example", expected_status=204, transport=transport)
        assert record.status == CheckStatus.UP

    def test_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/":
                return httpx.Response(301, headers={"Location": "https://a.example/home"})
            return httpx.Response(200)

        record = probe_target("https://a.example/", transport=httpx.MockTransport(handler))
        assert record.status == CheckStatus.UP

    def test_timeout_is_down_with_latency(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        record = probe_target("https://a.example", transport=httpx.MockTransport(handler))
        assert record.status == CheckStatus.DOWN
        assert isinstance(record.latency_ms, int)

    def test_transport_error_is_down(self) -> None:
        record = probe_target("https://b.example", transport=httpx.MockTransport(_mixed_handler))
        assert record.status == CheckStatus.DOWN

    def test_unreachable_address(self) -> None:
        record = probe_target("http://256.256.256.256:99999/nope", timeout_s=1.0)
        assert record.status == CheckStatus.DOWN


# ── HealthChecker ────────────────────────────────────────────────────────────


class FlakyStore(TimeSeriesStore):
    """Store that refuses writes for one target."""

    def __init__(self, db_path, broken_target: str) -> None:
        super().__init__(db_path)
        self.broken_target = broken_target

    def append_check(self, record: CheckRecord) -> None:
        if record.target == self.broken_target:
            raise StoreWriteError("disk full")
        super().append_check(record)


@pytest.fixture
def checker(registry: TargetRegistry, store: TimeSeriesStore):
    c = HealthChecker(registry, store, timeout_s=1.0, transport=httpx.MockTransport(_mixed_handler))
    yield c
    c.close()


class TestHealthChecker:
    def test_one_record_per_target(self, checker: HealthChecker, registry, store) -> None:
        records = checker.run_all_checks()

        assert [r.target for r in records] == list(registry)
        assert [r.status for r in records] == [CheckStatus.UP, CheckStatus.DOWN, CheckStatus.DOWN]
        assert store.count(Collection.CHECKS) == len(registry)

    def test_every_tick_appends_n_records(self, checker: HealthChecker, registry, store) -> None:
        for _ in range(3):
            checker.run_all_checks()
        assert store.count(Collection.CHECKS) == 3 * len(registry)

        for target in registry:
            assert len(store.query_range(Collection.CHECKS, target=target)) == 3

    def test_all_targets_failing(self, registry, store) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("no route", request=request)

        checker = HealthChecker(registry, store, transport=httpx.MockTransport(handler))
        try:
            records = checker.run_all_checks()
        finally:
            checker.close()

        assert len(records) == len(registry)
        assert all(r.status == CheckStatus.DOWN for r in records)
        assert store.count(Collection.CHECKS) == len(registry)

    def test_uses_tick_timestamp(self, checker: HealthChecker, now) -> None:
        records = checker.run_all_checks(now=now)
        assert {r.timestamp for r in records} == {now}

    def test_store_failure_is_isolated(self, registry, tmp_path) -> None:
        store = FlakyStore(tmp_path / "flaky.db", broken_target="https://a.example")
        checker = HealthChecker(registry, store, transport=httpx.MockTransport(_mixed_handler))
        try:
            records = checker.run_all_checks()
        finally:
            checker.close()
            store.close()

        assert len(records) == 3
        stored = store.query_range(Collection.CHECKS)
        assert {r.target for r in stored} == {"https://b.example", "https://c.example"}

    def test_unexpected_error_is_down_with_elapsed_latency(self, registry, store) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "a.example":
                time.sleep(0.05)
                raise RuntimeError("unexpected")
            return httpx.Response(200)

        checker = HealthChecker(registry, store, transport=httpx.MockTransport(handler))
        try:
            records = checker.run_all_checks()
        finally:
            checker.close()

        assert [r.status for r in records] == [CheckStatus.DOWN, CheckStatus.UP, CheckStatus.UP]
        assert records[0].latency_ms >= 50
        assert store.count(Collection.CHECKS) == len(registry)
