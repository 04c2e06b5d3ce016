"""Webhook HTTP server.

Receives pull request service hook notifications and hands them to the
reconciler. Also exposes an unauthenticated health endpoint.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
from typing import Any

from aiohttp import web

from prsync import __version__
from prsync.adapters import AdapterRegistry
from prsync.azdo_client import AzureDevOpsClient
from prsync.ledger import FirstSeenLedger
from prsync.reconcile import Reconciler
from prsync_core.config import SyncConfig
from prsync_core.types import PullRequestEvent

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", SyncConfig)
RECONCILER_KEY = web.AppKey("reconciler", Reconciler)


def _token_matches(expected: str, supplied: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def _supplied_token(request: web.Request) -> str | None:
    """Extract the shared secret from Bearer or Basic credentials.

    Azure DevOps service hooks send Basic auth; the password carries the
    secret and the user name is ignored.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    if auth_header.startswith("Basic "):
        try:
            decoded = base64.b64decode(auth_header[6:], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        _, sep, password = decoded.partition(":")
        return password if sep else None
    return None


@web.middleware
async def auth_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Authenticate requests using the configured webhook token.

    Args:
        request: The aiohttp request object.
        handler: The request handler.

    Returns:
        Response from handler or 401 if unauthorized.
    """
    # Health endpoint doesn't require auth
    if request.path == "/api/health":
        return await handler(request)

    required_token = request.app[CONFIG_KEY].server.webhook_token
    if not required_token:
        # No-auth mode (local dev)
        return await handler(request)

    token = _supplied_token(request)
    if token is None or not _token_matches(required_token, token):
        return web.json_response({"error": "unauthorized"}, status=401)

    return await handler(request)


async def handle_health(request: web.Request) -> web.Response:
    """Health check endpoint.

    Args:
        request: The aiohttp request object.

    Returns:
        JSON response with status and version.
    """
    return web.json_response({"status": "ok", "version": __version__})


async def handle_webhook(request: web.Request) -> web.Response:
    """POST /webhook - Sync linked work items with a pull request event.

    The body is parsed as JSON whatever the Content-Type header says.

    Args:
        request: The aiohttp request object.

    Returns:
        JSON response with the reconciliation outcome.
    """
    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"error": "invalid JSON in request body"}, status=400)

    event = PullRequestEvent.from_payload(body)

    try:
        result = await request.app[RECONCILER_KEY].handle_event(event)
    except Exception:
        logger.exception("Webhook processing failed")
        return web.json_response({"error": "internal error"}, status=500)

    return web.json_response(result.to_dict())


def create_app(
    config: SyncConfig | None = None,
    registry: AdapterRegistry | None = None,
) -> web.Application:
    """Create and configure the aiohttp application.

    Adapters missing from ``registry`` are built from ``config`` and closed
    when the application shuts down.

    Args:
        config: Settings. Defaults to SyncConfig.from_env().
        registry: Optional pre-built adapters (used by tests).

    Returns:
        Configured aiohttp Application instance.
    """
    config = config or SyncConfig.from_env()
    registry = registry or AdapterRegistry()

    app = web.Application(middlewares=[auth_middleware])
    app[CONFIG_KEY] = config

    if registry.tracker is None:
        client = AzureDevOpsClient(config.tracker)
        registry.tracker = client

        async def _close_client(_app: web.Application) -> None:
            await client.close()

        app.on_cleanup.append(_close_client)

    if registry.ledger is None:
        ledger = FirstSeenLedger(
            ttl_seconds=config.ledger.ttl_seconds,
            max_entries=config.ledger.max_entries,
            storage_path=config.ledger.path or None,
        )
        registry.ledger = ledger

        async def _close_ledger(_app: web.Application) -> None:
            ledger.close()

        app.on_cleanup.append(_close_ledger)

    app[RECONCILER_KEY] = Reconciler(
        tracker=registry.tracker,
        ledger=registry.ledger,
        early_completion_window_ms=config.ledger.early_completion_window_ms,
    )

    # Register routes
    app.router.add_get("/api/health", handle_health)
    app.router.add_post("/webhook", handle_webhook)
    app.router.add_post("/api/webhook", handle_webhook)

    return app
