"""Transition safety gate.

Decides which state a work item may actually be moved to and applies it,
checking the live tracker state rather than trusting the event payload:

1. The desired state must exist in the work item type's workflow, or map to
   a fallback that does (CodeReview degrades to Doing; Done tries Closed,
   then Resolved).
2. Both the current state and the resolved state must be canonical names
   the transition table connects. A fallback such as Closed is picked but
   never written.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prsync_core.types import (
    ALLOWED_TRANSITIONS,
    CanonicalState,
    TransportError,
    WorkItemUpdateError,
)

if TYPE_CHECKING:
    from prsync_core.adapters.tracker import TrackerAdapter

logger = logging.getLogger(__name__)

# Candidate state names for a completed pull request, in priority order.
COMPLETED_FALLBACKS: tuple[str, ...] = (
    CanonicalState.COMPLETED.value,
    "Closed",
    "Resolved",
)


def pick_state(desired: CanonicalState, allowed: set[str]) -> str | None:
    """Choose the state name to use for ``desired`` within a workflow.

    Args:
        desired: The canonical state the pull request calls for.
        allowed: State names defined for the work item's type.

    Returns:
        A state name from ``allowed``, or None if nothing fits.
    """
    if desired.value in allowed:
        return desired.value

    if (
        desired is CanonicalState.IN_REVIEW
        and CanonicalState.IN_PROGRESS.value in allowed
    ):
        return CanonicalState.IN_PROGRESS.value

    if desired is CanonicalState.COMPLETED:
        for candidate in COMPLETED_FALLBACKS:
            if candidate in allowed:
                return candidate

    return None


def is_legal_transition(current: str, final: str) -> bool:
    """Check the transition table for ``current`` → ``final``.

    The table only knows canonical state names, so a move from or to any
    other name (To Do, Closed, Resolved) is never legal.
    """
    origin = CanonicalState.from_name(current)
    target = CanonicalState.from_name(final)
    if origin is None or target is None:
        return False
    return target in ALLOWED_TRANSITIONS[origin]


class TransitionGate:
    """Moves work items towards a desired state when the workflow allows it."""

    def __init__(self, tracker: TrackerAdapter) -> None:
        self._tracker = tracker

    async def resolve_target_state(
        self, work_item_id: int, desired: CanonicalState
    ) -> str | None:
        """Find the state name this work item's type supports for ``desired``.

        Raises:
            TransportError: If the work item or its type's states can't be read.
        """
        work_item = await self._tracker.get_work_item(work_item_id)
        allowed = await self._tracker.get_allowed_states(work_item.type)

        final = pick_state(desired, allowed)
        if final is None:
            logger.info(
                "Work item %s (%s) does not support %s (allowed: %s)",
                work_item_id,
                work_item.type,
                desired.value,
                ", ".join(sorted(allowed)),
            )
        return final

    async def apply_if_legal(
        self, work_item_id: int, desired: CanonicalState
    ) -> bool:
        """Update the work item if the transition is supported and legal.

        Args:
            work_item_id: Tracker id of the work item.
            desired: The canonical state the pull request calls for.

        Returns:
            True if the state was written, False if nothing was done.

        Raises:
            WorkItemUpdateError: If the tracker rejects the write.
            TransportError: If a read fails.
        """
        final = await self.resolve_target_state(work_item_id, desired)
        if final is None:
            return False

        work_item = await self._tracker.get_work_item(work_item_id)
        current = work_item.state
        if not current:
            logger.info("Work item %s has no readable state, skipping", work_item_id)
            return False

        if current == final:
            logger.info("Work item %s already in %s", work_item_id, final)
            return False

        if not is_legal_transition(current, final):
            logger.info(
                "Skipping work item %s: transition %s → %s not allowed",
                work_item_id,
                current,
                final,
            )
            return False

        try:
            await self._tracker.set_work_item_state(work_item_id, final)
        except WorkItemUpdateError:
            raise
        except TransportError as e:
            raise WorkItemUpdateError(
                f"Update of work item {work_item_id} to {final} failed: {e}",
                status=e.status,
            ) from e
        logger.info("Work item %s moved %s → %s", work_item_id, current, final)
        return True
