"""Speed prober — download, upload and latency in one all-or-nothing run.

The three phases run in order against the configured reference endpoints.
A failure in any phase raises SpeedTestError and nothing is stored; only a
complete triple becomes a SpeedRecord.

A run can be cancelled from another thread. The flag is checked between
phases and between body chunks, and a cancelled run fails with phase
``"cancelled"``.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Iterator
from dataclasses import replace
from datetime import datetime

import httpx

from .models import SpeedRecord
from .probes import elapsed_ms
from .store import TimeSeriesStore

logger = logging.getLogger(__name__)

DOWNLOAD_URL = "https://speed.cloudflare.com/__down"
UPLOAD_URL = "https://speed.cloudflare.com/__up"
LATENCY_URL = "https://1.1.1.1"

_CHUNK_SIZE = 64 * 1024
_MIN_ELAPSED_S = 1e-6


class SpeedTestError(Exception):
    """Raised when a speed-test phase fails; nothing is persisted."""

    def __init__(self, phase: str, detail: str) -> None:
        self.phase = phase
        self.detail = detail
        super().__init__(f"{phase} failed: {detail}")


def mbps(nbytes: int, seconds: float) -> float:
    return (nbytes * 8 / 1_000_000) / max(seconds, _MIN_ELAPSED_S)


def _raise_if_cancelled(cancelled: threading.Event | None, where: str) -> None:
    if cancelled is not None and cancelled.is_set():
        raise SpeedTestError("cancelled", f"stopped {where}")


def measure_download(
    client: httpx.Client, url: str, nbytes: int, cancelled: threading.Event | None = None,
) -> float:
    """Stream ``nbytes`` from ``url`` and return throughput in Mbps."""
    t0 = time.perf_counter()
    received = 0
    try:
        with client.stream("GET", url, params={"bytes": nbytes}) as resp:
            resp.raise_for_status()
            for chunk in resp.iter_bytes(_CHUNK_SIZE):
                _raise_if_cancelled(cancelled, "during download")
                received += len(chunk)
    except httpx.HTTPError as e:
        raise SpeedTestError("download", f"{type(e).__name__}: {e}") from e
    elapsed = time.perf_counter() - t0
    if received == 0:
        raise SpeedTestError("download", "empty response body")
    return mbps(received, elapsed)


def _filler(nbytes: int, cancelled: threading.Event | None) -> Iterator[bytes]:
    chunk = b"a" * _CHUNK_SIZE
    sent = 0
    while sent < nbytes:
        _raise_if_cancelled(cancelled, "during upload")
        n = min(_CHUNK_SIZE, nbytes - sent)
        yield chunk[:n]
        sent += n


def measure_upload(
    client: httpx.Client, url: str, nbytes: int, cancelled: threading.Event | None = None,
) -> float:
    """POST ``nbytes`` of filler to ``url`` and return throughput in Mbps."""
    t0 = time.perf_counter()
    try:
        resp = client.post(
            url,
            params={"uploadId": random.randint(0, 999_999)},
            content=_filler(nbytes, cancelled),
            headers={"Content-Type": "application/octet-stream"},
        )
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise SpeedTestError("upload", f"{type(e).__name__}: {e}") from e
    return mbps(nbytes, time.perf_counter() - t0)


def measure_latency(client: httpx.Client, url: str) -> int:
    """HEAD ``url`` and return the round trip in milliseconds."""
    t0 = time.perf_counter()
    try:
        resp = client.head(url)
    except httpx.HTTPError as e:
        raise SpeedTestError("latency", f"{type(e).__name__}: {e}") from e
    latency = elapsed_ms(t0)
    if resp.status_code >= 400:
        raise SpeedTestError("latency", f"HTTP {resp.status_code}")
    return latency


class SpeedProber:
    """Runs full speed tests and stores each successful result."""

    def __init__(
        self,
        store: TimeSeriesStore,
        download_bytes: int = 25_000_000,
        upload_bytes: int = 10 * 1024 * 1024,
        timeout_s: float = 120.0,
        download_url: str = DOWNLOAD_URL,
        upload_url: str = UPLOAD_URL,
        latency_url: str = LATENCY_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.store = store
        self.download_bytes = download_bytes
        self.upload_bytes = upload_bytes
        self.timeout_s = timeout_s
        self.download_url = download_url
        self.upload_url = upload_url
        self.latency_url = latency_url
        self._transport = transport
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Make the current and any later run fail fast with phase "cancelled"."""
        self._cancelled.set()

    def measure(self) -> SpeedRecord:
        """Run all three phases without touching the store."""
        cancelled = self._cancelled
        _raise_if_cancelled(cancelled, "before download")
        with httpx.Client(
            timeout=self.timeout_s, follow_redirects=True, transport=self._transport,
        ) as client:
            down = measure_download(client, self.download_url, self.download_bytes, cancelled)
            logger.debug("Download: %.2f Mbps", down)
            _raise_if_cancelled(cancelled, "before upload")
            up = measure_upload(client, self.upload_url, self.upload_bytes, cancelled)
            logger.debug("Upload: %.2f Mbps", up)
            _raise_if_cancelled(cancelled, "before latency")
            latency = measure_latency(client, self.latency_url)

        return SpeedRecord(
            download_mbps=down,
            upload_mbps=up,
            latency_ms=latency,
        )

    def run_speed_test(self, now: datetime | None = None) -> SpeedRecord:
        """Measure and persist one SpeedRecord.

        Raises SpeedTestError if a phase fails, StoreWriteError if the
        record cannot be stored.
        """
        record = self.measure()
        if now is not None:
            record = replace(record, timestamp=now)
        self.store.append_speed_test(record)
        logger.info(
            "Speed test completed: %.2f Mbps down, %.2f Mbps up, %d ms latency",
            record.download_mbps, record.upload_mbps, record.latency_ms,
        )
        return record
