"""Reachability probes — one bounded-timeout HEAD request per target.

A probe never raises: transport errors, timeouts and unexpected status codes
all come back as a DOWN record carrying the elapsed time.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime

import httpx

from .models import CheckRecord, CheckStatus, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


def elapsed_ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


def probe_target(
    target: str,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    expected_status: int = 200,
    transport: httpx.BaseTransport | None = None,
    now: datetime | None = None,
) -> CheckRecord:
    """HEAD ``target`` and classify it as up (expected status in time) or down."""
    t0 = time.perf_counter()
    try:
        with httpx.Client(
            timeout=timeout_s, follow_redirects=True, transport=transport,
        ) as client:
            resp = client.head(target)
        latency = elapsed_ms(t0)
        if resp.status_code == expected_status:
            status = CheckStatus.UP
        else:
            status = CheckStatus.DOWN
            logger.debug("%s: expected %d, got %d", target, expected_status, resp.status_code)
    except httpx.TimeoutException:
        latency = elapsed_ms(t0)
        status = CheckStatus.DOWN
        logger.debug("%s: timed out after %dms", target, latency)
    except httpx.HTTPError as e:
        latency = elapsed_ms(t0)
        status = CheckStatus.DOWN
        logger.debug("%s: %s: %s", target, type(e).__name__, e)
    except Exception as e:
        latency = elapsed_ms(t0)
        status = CheckStatus.DOWN
        logger.debug("%s: unexpected probe error %s: %s", target, type(e).__name__, e)

    return CheckRecord(
        target=target,
        status=status,
        latency_ms=latency,
        timestamp=now or utcnow(),
    )
