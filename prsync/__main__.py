"""Entry point for the prsync webhook server.

Run with:
  python -m prsync
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from prsync_core.config import SyncConfig

logger = logging.getLogger(__name__)


def main() -> None:
    """Load .env, validate configuration and run the daemon."""
    # Explicit path resolution: PRSYNC_ENV_FILE > cwd search
    env_file = os.getenv("PRSYNC_ENV_FILE")
    if env_file and Path(env_file).exists():
        load_dotenv(env_file)
    else:
        load_dotenv()

    from .daemon import run_daemon

    try:
        config = SyncConfig.from_env()
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    missing = config.missing()
    if missing:
        logger.error(
            "Missing required environment variables: %s", ", ".join(missing)
        )
        sys.exit(1)

    run_daemon(config)


if __name__ == "__main__":
    main()
