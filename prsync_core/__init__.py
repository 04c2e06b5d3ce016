"""
prsync core: types, configuration and adapter protocols.

Keeps Azure DevOps work items in step with the pull requests they are
linked to.
"""

__version__ = "0.1.0"

from prsync_core.adapters import LedgerAdapter, TrackerAdapter
from prsync_core.config import LedgerConfig, ServerConfig, SyncConfig, TrackerConfig
from prsync_core.types import (
    # Constants
    ALLOWED_TRANSITIONS,
    # Enums
    CanonicalState,
    Outcome,
    # Errors
    TransportError,
    WorkItemNotFoundError,
    WorkItemUpdateError,
    # Records
    PullRequestEvent,
    ReconcileResult,
    WorkItem,
    WorkItemOutcome,
)

__all__ = [
    # Adapter protocols
    "LedgerAdapter",
    "TrackerAdapter",
    # Configuration
    "SyncConfig",
    "TrackerConfig",
    "LedgerConfig",
    "ServerConfig",
    # Constants
    "ALLOWED_TRANSITIONS",
    # Enums
    "CanonicalState",
    "Outcome",
    # Errors
    "TransportError",
    "WorkItemNotFoundError",
    "WorkItemUpdateError",
    # Records
    "PullRequestEvent",
    "WorkItem",
    "WorkItemOutcome",
    "ReconcileResult",
]
