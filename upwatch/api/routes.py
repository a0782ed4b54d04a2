"""JSON query routes over the monitor engine.

Endpoints:
  GET  /api/status        — recent checks, newest first (capped)
  GET  /api/summary       — reachability uptime + avg latency per target
  GET  /api/uptime        — SLA uptime (latency <= threshold) per target
  GET  /api/speedtest     — recent speed tests, newest first (capped)
  GET  /api/size          — database size in bytes
  GET  /api/targets       — configured targets
  POST /api/checks/run    — run one check tick now
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from ..monitor.engine import MonitorEngine
from ..monitor.scheduler import SchedulerStoppedError

logger = logging.getLogger(__name__)

monitor_router = APIRouter()


def _engine(request: Request) -> MonitorEngine:
    return request.app.state.engine


@monitor_router.get("/status")
def recent_checks(
    request: Request, minutes: int | None = Query(None, ge=1),
) -> list[dict[str, Any]]:
    records = _engine(request).aggregator.status_snapshot(minutes)
    return [r.to_dict() for r in records]


@monitor_router.get("/summary")
def summary(
    request: Request, minutes: int | None = Query(None, ge=1),
) -> list[dict[str, Any]]:
    return [s.to_dict() for s in _engine(request).aggregator.summaries(minutes)]


@monitor_router.get("/uptime")
def uptime(
    request: Request,
    minutes: int | None = Query(None, ge=1),
    threshold_ms: int | None = Query(None, ge=0),
) -> list[dict[str, Any]]:
    stats = _engine(request).aggregator.uptimes_by_latency(minutes, threshold_ms)
    return [s.to_dict() for s in stats]


@monitor_router.get("/speedtest")
def speed_tests(
    request: Request, minutes: int | None = Query(None, ge=1),
) -> list[dict[str, Any]]:
    records = _engine(request).aggregator.recent_speed_tests(minutes)
    return [r.to_dict() for r in records]


@monitor_router.get("/size")
def table_size(request: Request) -> dict[str, Any]:
    return _engine(request).aggregator.storage_footprint()


@monitor_router.get("/targets")
def list_targets(request: Request) -> dict[str, Any]:
    return {"targets": list(_engine(request).registry)}


@monitor_router.post("/checks/run")
async def run_checks(request: Request) -> list[dict[str, Any]]:
    """Trigger an immediate check tick and return its records."""
    scheduler = _engine(request).scheduler
    try:
        records = await scheduler.run_checks_now()
    except SchedulerStoppedError as e:
        raise HTTPException(status_code=503, detail="Monitor is shutting down") from e
    return [r.to_dict() for r in records]
