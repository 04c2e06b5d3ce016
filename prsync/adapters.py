"""Adapter registry for dependency injection into the webhook app.

Holds the adapter instances the reconciler works through. Tests inject
fakes here; in production the app fills in whatever is left empty from
configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prsync_core.adapters.ledger import LedgerAdapter
    from prsync_core.adapters.tracker import TrackerAdapter


@dataclass
class AdapterRegistry:
    """Holds adapter instances for dependency injection.

    Attributes:
        tracker: Work item tracker adapter (Azure DevOps, etc).
        ledger: First-seen ledger for out-of-order suppression.
    """

    tracker: TrackerAdapter | None = None
    ledger: LedgerAdapter | None = None
