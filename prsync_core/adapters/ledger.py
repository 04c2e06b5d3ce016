"""First-seen ledger adapter protocol.

Implemented by: prsync.ledger.FirstSeenLedger (reference).

Remembers when each pull request was first observed so that a "completed"
notification delivered ahead of the "active" one can be recognized and
suppressed. Entries are created once and never updated; how long they live
is up to the implementation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LedgerAdapter(Protocol):
    """Process-scoped memory of pull request first sightings."""

    async def record_first_seen(self, pull_request_id: int | None) -> None:
        """Store the current time for an id not seen before. No-op otherwise."""
        ...

    async def is_too_soon(
        self, pull_request_id: int | None, window_ms: int = 5000
    ) -> bool:
        """True iff the id was first seen less than ``window_ms`` ago."""
        ...
