"""Pull request status → desired work item state."""

from __future__ import annotations

from prsync_core.types import CanonicalState, PullRequestEvent

_STATUS_TO_STATE: dict[str, CanonicalState] = {
    "abandoned": CanonicalState.IN_PROGRESS,
    "completed": CanonicalState.COMPLETED,
    "active": CanonicalState.IN_REVIEW,
}


def decide(status: str | None) -> CanonicalState | None:
    """Map a pull request status to the state its work items should be in.

    Args:
        status: Pull request status from the event ("active", "completed",
            "abandoned"). Anything else, including None, means no change.

    Returns:
        The desired canonical state, or None when no change is intended.
    """
    if not isinstance(status, str):
        return None
    return _STATUS_TO_STATE.get(status)


def decide_for_event(event: PullRequestEvent) -> CanonicalState | None:
    """Desired state for an event. The event type is not consulted."""
    return decide(event.status)
