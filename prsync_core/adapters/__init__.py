"""Adapter protocol interfaces for prsync.

Each protocol defines a capability boundary that a backend implements:

    Azure DevOps REST  → TrackerAdapter
    in-memory/DiskCache → LedgerAdapter

Protocols use structural subtyping (PEP 544); adapters implement the
interface without inheriting from it.
"""

from prsync_core.adapters.ledger import LedgerAdapter
from prsync_core.adapters.tracker import TrackerAdapter

__all__ = [
    "LedgerAdapter",
    "TrackerAdapter",
]
