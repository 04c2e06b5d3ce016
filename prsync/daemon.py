"""Daemon runner for the prsync webhook server.

Runs the aiohttp application in a single asyncio event loop until
interrupted.
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from prsync_core.config import SyncConfig

from .rest_server import create_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def start_daemon(
    config: SyncConfig, stop_event: asyncio.Event | None = None
) -> None:
    """Start the webhook server and serve until stopped.

    Args:
        config: Settings for the tracker, ledger and listener.
        stop_event: Event that ends the daemon when set. Defaults to a
            fresh event, so the daemon runs until interrupted.
    """
    host = config.server.host
    port = config.server.port

    logger.info("Starting prsync daemon")
    logger.info(
        f"Tracker: {config.tracker.base_url}/{config.tracker.organization}"
        f"/{config.tracker.project}"
    )
    logger.info(
        "Early completion window: %dms", config.ledger.early_completion_window_ms
    )
    if not config.server.webhook_token:
        logger.warning("PRSYNC_WEBHOOK_TOKEN not set, webhook accepts any caller")

    app = create_app(config)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Listening on http://{host}:{port}")

    try:
        await (stop_event or asyncio.Event()).wait()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    finally:
        logger.info("Stopping webhook server...")
        await runner.cleanup()
        logger.info("Daemon stopped")


def run_daemon(config: SyncConfig) -> None:
    """Entry point for daemon mode.

    Runs the asyncio event loop with the server task.
    """
    try:
        asyncio.run(start_daemon(config))
    except KeyboardInterrupt:
        # Already handled in start_daemon
        pass
