"""FastAPI server wrapping the monitor engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, settings as default_settings
from ..monitor.engine import MonitorEngine
from ..monitor.store import StoreReadError
from .routes import monitor_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build and start the engine; startup errors abort the server."""
        engine = MonitorEngine.from_settings(settings, transport=transport)
        app.state.engine = engine
        await engine.start()

        yield

        await engine.stop()

    app = FastAPI(
        title="upwatch - uptime and bandwidth monitor",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreReadError)
    async def store_read_error(request: Request, exc: StoreReadError) -> JSONResponse:
        logger.warning("Query failed on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Database error"})

    app.include_router(monitor_router, prefix="/api")

    return app
