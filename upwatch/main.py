"""Entry point for the upwatch uptime and bandwidth monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel

from upwatch.api.server import create_app
from upwatch.config import settings
from upwatch.monitor.engine import MonitorEngine
from upwatch.monitor.store import SchemaInitError

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("upwatch")


def _banner(mode: str) -> None:
    console.print(Panel(
        f"Targets: {settings.targets}\n"
        f"Checks every {settings.check_interval}s, speed test every "
        f"{settings.speedtest_interval}s, retention {settings.retention_days}d\n"
        f"Database: {settings.db_path}",
        title=f"upwatch {mode}",
        style="bold green",
    ))


def run_server() -> None:
    """Start the engine behind the FastAPI server."""
    _banner("server")
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


async def _run_monitor() -> None:
    engine = MonitorEngine.from_settings(settings)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await engine.start()
    try:
        await stop.wait()
        logger.info("Received shutdown signal, cleaning up...")
    finally:
        await engine.stop()


def run_monitor() -> None:
    """Run the engine without the HTTP API until SIGINT/SIGTERM."""
    _banner("monitor")
    try:
        asyncio.run(_run_monitor())
    except (ValueError, SchemaInitError) as e:
        console.print(f"[bold red]Startup failed:[/bold red] {e}")
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description="upwatch uptime and bandwidth monitor")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the monitor with the JSON API")
    sub.add_parser("monitor", help="Run the monitor headless")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "monitor":
        run_monitor()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
