"""Shared test fixtures for prsync tests.

Provides a fake tracker, a controllable clock, and sample payloads.
"""

from __future__ import annotations

from typing import Any

import pytest

from prsync.ledger import FirstSeenLedger
from prsync_core.types import TransportError, WorkItem, WorkItemNotFoundError

AGILE_TASK_STATES = {"To Do", "Doing", "CodeReview", "Done"}


class FakeTracker:
    """In-memory TrackerAdapter implementation for testing.

    Work items live in a dict; every write is recorded in ``writes``. Ids in
    ``fail_reads`` / ``fail_writes`` raise TransportError on the matching call.
    """

    def __init__(self) -> None:
        self.items: dict[int, dict[str, Any]] = {}
        self.states_by_type: dict[str, set[str]] = {}
        self.links: dict[tuple[str | None, int | None], list[int]] = {}
        self.writes: list[tuple[int, str]] = []
        self.link_calls: list[tuple[str | None, int | None]] = []
        self.fail_reads: set[int] = set()
        self.fail_writes: set[int] = set()
        self.link_error: Exception | None = None

    def add(self, work_item_id: int, type: str, state: str | None) -> None:
        """Register a work item."""
        self.items[work_item_id] = {"type": type, "state": state}

    async def get_work_item(self, work_item_id: int) -> WorkItem:
        if work_item_id in self.fail_reads:
            raise TransportError(f"read of {work_item_id} failed", status=503)
        item = self.items.get(work_item_id)
        if item is None:
            raise WorkItemNotFoundError(f"work item {work_item_id} not found", 404)
        return WorkItem(id=work_item_id, type=item["type"], state=item["state"])

    async def get_allowed_states(self, work_item_type: str) -> set[str]:
        return set(self.states_by_type.get(work_item_type, set()))

    async def set_work_item_state(self, work_item_id: int, state: str) -> None:
        if work_item_id in self.fail_writes:
            raise TransportError(f"write of {work_item_id} rejected", status=400)
        self.writes.append((work_item_id, state))
        self.items[work_item_id]["state"] = state

    async def get_linked_work_item_ids(
        self, repository_id: str | None, pull_request_id: int | None
    ) -> list[int]:
        self.link_calls.append((repository_id, pull_request_id))
        if self.link_error is not None:
            raise self.link_error
        return list(self.links.get((repository_id, pull_request_id), []))


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def pr_payload(
    status: str | None = "active",
    pull_request_id: int | None = 7,
    work_item_ids: list[int] | None = None,
    repository_id: str = "repo-guid",
    event_type: str = "git.pullrequest.updated",
) -> dict[str, Any]:
    """Build a service hook body for a pull request event."""
    resource: dict[str, Any] = {
        "pullRequestId": pull_request_id,
        "repository": {"id": repository_id, "name": "web"},
    }
    if status is not None:
        resource["status"] = status
    if work_item_ids is not None:
        resource["workItemRefs"] = [{"id": i, "url": "..."} for i in work_item_ids]
    return {"eventType": event_type, "resource": resource}


@pytest.fixture
def tracker() -> FakeTracker:
    """Provide a tracker with the Agile-style Task workflow registered."""
    fake = FakeTracker()
    fake.states_by_type["Task"] = set(AGILE_TASK_STATES)
    return fake


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fresh FakeClock."""
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> FirstSeenLedger:
    """Provide an in-memory ledger driven by the fake clock."""
    return FirstSeenLedger(clock=clock)
