"""Record types for the monitor: persisted time series + derived stats."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckStatus(str, Enum):
    UP = "up"
    DOWN = "down"


# ── Persisted records ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CheckRecord:
    """One reachability probe of one target."""

    target: str
    status: CheckStatus
    latency_ms: int
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_up(self) -> bool:
        return self.status == CheckStatus.UP

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "target": self.target,
            "status": self.status.value,
            "latency_ms": self.latency_ms,
        }


@dataclass(frozen=True)
class SpeedRecord:
    """A complete download/upload/latency measurement."""

    download_mbps: float
    upload_mbps: float
    latency_ms: int
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "download_mbps": self.download_mbps,
            "upload_mbps": self.upload_mbps,
            "latency_ms": self.latency_ms,
        }


# ── Derived (never persisted) ────────────────────────────────────────────────


@dataclass(frozen=True)
class SummaryStat:
    """Reachability uptime + mean latency of one target over a window.

    ``avg_latency_ms`` is None when the window holds no reachable check.
    """

    target: str
    uptime_pct: float
    avg_latency_ms: float | None
    total_checks: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "uptime_pct": self.uptime_pct,
            "avg_latency_ms": self.avg_latency_ms,
            "total_checks": self.total_checks,
        }


@dataclass(frozen=True)
class UptimeByLatency:
    """Share of checks answered within the latency threshold."""

    target: str
    uptime_pct: float
    total_checks: int
    window_hours: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "uptime_pct": self.uptime_pct,
            "total_checks": self.total_checks,
            "window_hours": self.window_hours,
        }
