"""aiohttp server for chronoplan: task API plus the background reminder scanner."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Optional

from aiohttp import web

from chronoplan import __version__
from chronoplan.api.routes import register_occurrence_routes, register_task_routes
from chronoplan.api.state import PlannerState
from chronoplan.core.config_loader import Config
from chronoplan.core.logging_config import configure_logging
from chronoplan.core.timezone_utils import format_instant, now_utc
from chronoplan.storage.task_store import TaskStore

logger = logging.getLogger(__name__)


def make_app(state: PlannerState) -> web.Application:
    """Create the aiohttp application with routes wired to ``state``."""
    app = web.Application()

    async def health_check(_request: web.Request) -> web.Response:
        scanner = state.scanner
        return web.json_response(
            {
                "status": "ok",
                "version": __version__,
                "server_time_iso": format_instant(now_utc()),
                "task_count": len(state.tasks()),
                "reminder_scanner_running": bool(scanner and scanner.is_running),
                "notified_count": len(scanner.notified) if scanner else 0,
            }
        )

    app.router.add_get("/api/health", health_check)
    register_task_routes(app, state)
    register_occurrence_routes(app, state)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


def build_state(config: Config) -> PlannerState:
    """Load the task store and wire the reminder scanner."""
    store = TaskStore(config.tasks_file)
    store.load()
    state = PlannerState(store=store, config=config)
    state.build_scanner()
    return state


async def _serve(config: Config, external_stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the HTTP server and reminder scanner until signalled to stop."""
    state = build_state(config)
    app = make_app(state)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=config.server_bind, port=config.server_port)
    await site.start()
    logger.info("chronoplan listening on %s:%d", config.server_bind, config.server_port)

    scanner = state.scanner
    if scanner is not None:
        await scanner.start()

    stop_event = external_stop_event or asyncio.Event()
    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    if scanner is not None:
        await scanner.stop()
    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(config: Config) -> None:
    """Start the asyncio event loop and HTTP server; blocks until SIGINT/SIGTERM."""
    configure_logging(debug_mode=config.log_level == "DEBUG")
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
