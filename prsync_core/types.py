"""Shared data types for prsync adapter interfaces."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ============================================================
# Enums
# ============================================================


class CanonicalState(Enum):
    """Workflow stages a linked work item should reflect.

    The value is the state name used by the tracker's process template.
    """

    IN_PROGRESS = "Doing"
    IN_REVIEW = "CodeReview"
    COMPLETED = "Done"

    @classmethod
    def from_name(cls, name: str | None) -> CanonicalState | None:
        """Look up a canonical state by tracker state name, or None."""
        for state in cls:
            if state.value == name:
                return state
        return None


class Outcome(Enum):
    """What the reconciler decided to do with a pull request event."""

    NO_STATE_CHANGE = "no_state_change"
    IGNORED_EARLY_COMPLETED = "ignored_early_completed"
    NO_LINKED_WORK_ITEMS = "no_linked_work_items"
    UPDATED = "updated"


# Work item states reachable in one hop from each canonical state.
ALLOWED_TRANSITIONS: dict[CanonicalState, frozenset[CanonicalState]] = {
    CanonicalState.IN_PROGRESS: frozenset({CanonicalState.IN_REVIEW}),
    CanonicalState.IN_REVIEW: frozenset(
        {CanonicalState.IN_PROGRESS, CanonicalState.COMPLETED}
    ),
    CanonicalState.COMPLETED: frozenset(),
}


# ============================================================
# Errors
# ============================================================


class TransportError(Exception):
    """A call to the work item tracker failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class WorkItemNotFoundError(TransportError):
    """The tracker has no work item with the requested id."""


class WorkItemUpdateError(TransportError):
    """The tracker rejected a work item state change."""


# ============================================================
# Inbound events
# ============================================================


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class PullRequestEvent:
    """A pull request lifecycle notification from the code host.

    Attributes:
        event_type: Service hook event type (e.g. "git.pullrequest.updated").
        status: Pull request status ("active", "completed", "abandoned").
        pull_request_id: Pull request number within the repository.
        repository_id: Repository GUID.
        repository_name: Repository display name, for logging.
        work_item_ids: Work item ids carried on the payload, or None when the
            payload has no ``workItemRefs``.
    """

    event_type: str | None = None
    status: str | None = None
    pull_request_id: int | None = None
    repository_id: str | None = None
    repository_name: str | None = None
    work_item_ids: list[int] | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> PullRequestEvent:
        """Build an event from a parsed service hook body.

        Malformed payloads never raise; missing pieces come back as None.
        """
        if not isinstance(payload, dict):
            return cls()

        resource = payload.get("resource")
        if not isinstance(resource, dict):
            resource = {}
        repository = resource.get("repository")
        if not isinstance(repository, dict):
            repository = {}

        work_item_ids: list[int] | None = None
        refs = resource.get("workItemRefs")
        if isinstance(refs, list):
            work_item_ids = []
            for ref in refs:
                ref_id = _as_int(ref.get("id")) if isinstance(ref, dict) else None
                if ref_id:
                    work_item_ids.append(ref_id)

        status = resource.get("status")
        repo_id = repository.get("id")
        return cls(
            event_type=payload.get("eventType"),
            status=status if isinstance(status, str) else None,
            pull_request_id=_as_int(resource.get("pullRequestId")),
            repository_id=str(repo_id) if repo_id else None,
            repository_name=repository.get("name"),
            work_item_ids=work_item_ids,
        )


# ============================================================
# Tracker records
# ============================================================


@dataclass(frozen=True)
class WorkItem:
    """A work item as read from the tracker."""

    id: int
    type: str = ""
    state: str | None = None


# ============================================================
# Reconciliation results
# ============================================================


@dataclass(frozen=True)
class WorkItemOutcome:
    """Result of processing one linked work item.

    ``error`` is set when the item could not be read (skipped) or when the
    state write failed (``failed`` is True).
    """

    id: int
    updated: bool = False
    failed: bool = False
    error: str | None = None


@dataclass
class ReconcileResult:
    """Aggregate result of handling one pull request event."""

    outcome: Outcome
    desired_state: CanonicalState | None = None
    work_items: list[WorkItemOutcome] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return sum(1 for item in self.work_items if item.updated)

    @property
    def failed_count(self) -> int:
        return sum(1 for item in self.work_items if item.failed)

    @property
    def message(self) -> str:
        """Short human-readable outcome, stable across releases."""
        if self.outcome is Outcome.NO_STATE_CHANGE:
            return "No state change"
        if self.outcome is Outcome.IGNORED_EARLY_COMPLETED:
            return "Ignored early completed"
        if self.outcome is Outcome.NO_LINKED_WORK_ITEMS:
            return "No linked work items"
        state = self.desired_state.value if self.desired_state else "?"
        text = f"Updated {self.updated_count} work item(s) → {state}"
        if self.failed_count:
            text += f" ({self.failed_count} failed)"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "message": self.message,
            "desired_state": self.desired_state.value if self.desired_state else None,
            "updated": self.updated_count,
            "failed": self.failed_count,
            "work_items": [
                {
                    "id": item.id,
                    "updated": item.updated,
                    "failed": item.failed,
                    "error": item.error,
                }
                for item in self.work_items
            ],
        }
