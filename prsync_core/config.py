"""prsync configuration system.

Externalizes the settings the webhook receiver needs at runtime: tracker
organization and credentials, early-completion window, ledger bounds,
listener address, etc.

Configuration can be loaded from:
- Environment variables (AZDO_*, PRSYNC_*, PORT), optionally seeded from a
  .env file by the entry point
- Programmatic construction

This module defines the schema and the environment mapping.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass
class TrackerConfig:
    """Azure DevOps tracker configuration."""

    organization: str = ""
    project: str = ""
    token: str = ""
    """Personal access token, sent as the HTTP Basic password."""
    base_url: str = "https://dev.azure.com"
    api_version: str = "7.1"
    timeout_seconds: int = 30


@dataclass
class LedgerConfig:
    """First-seen ledger configuration."""

    early_completion_window_ms: int = 5000
    ttl_seconds: int = 3600
    max_entries: int = 10000
    path: str = ""
    """Directory for DiskCache persistence. Empty keeps the ledger in memory."""


@dataclass
class ServerConfig:
    """Webhook listener configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    webhook_token: str = ""
    """Shared secret for inbound webhooks. Empty disables auth (local dev)."""


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class SyncConfig:
    """Top-level prsync configuration.

    Load from the environment:
        config = SyncConfig.from_env()

    Or construct programmatically:
        config = SyncConfig(
            tracker=TrackerConfig(organization="contoso", project="web", token="..."),
        )
    """

    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> SyncConfig:
        """Build a config from environment variables.

        Args:
            env: Mapping to read from. Defaults to os.environ.

        Returns:
            Populated SyncConfig. Unset variables keep their defaults.

        Raises:
            ValueError: If a numeric variable is not an integer.
        """
        env = os.environ if env is None else env
        tracker = TrackerConfig(
            organization=env.get("AZDO_ORG", ""),
            project=env.get("AZDO_PROJECT", ""),
            token=env.get("AZDO_PAT", ""),
            base_url=env.get("AZDO_BASE_URL") or TrackerConfig.base_url,
            api_version=env.get("AZDO_API_VERSION") or TrackerConfig.api_version,
            timeout_seconds=_env_int(
                env, "AZDO_TIMEOUT", TrackerConfig.timeout_seconds
            ),
        )
        ledger = LedgerConfig(
            early_completion_window_ms=_env_int(
                env,
                "PRSYNC_EARLY_WINDOW_MS",
                LedgerConfig.early_completion_window_ms,
            ),
            ttl_seconds=_env_int(env, "PRSYNC_LEDGER_TTL", LedgerConfig.ttl_seconds),
            max_entries=_env_int(
                env, "PRSYNC_LEDGER_MAX_ENTRIES", LedgerConfig.max_entries
            ),
            path=env.get("PRSYNC_LEDGER_PATH", ""),
        )
        server = ServerConfig(
            host=env.get("PRSYNC_HOST") or ServerConfig.host,
            port=_env_int(env, "PORT", ServerConfig.port),
            webhook_token=env.get("PRSYNC_WEBHOOK_TOKEN", ""),
        )
        return cls(tracker=tracker, ledger=ledger, server=server)

    def missing(self) -> list[str]:
        """Return the names of required environment variables left unset."""
        required = {
            "AZDO_ORG": self.tracker.organization,
            "AZDO_PROJECT": self.tracker.project,
            "AZDO_PAT": self.tracker.token,
        }
        return [name for name, value in required.items() if not value]
