"""Work item tracker adapter protocol.

Implemented by: prsync.azdo_client.AzureDevOpsClient (reference), or any
tracker exposing work items with typed workflows.

Responsible for the four reads and writes the reconciler needs. Adapters do
no decision making: they fetch, they patch, and they raise TransportError
when the tracker cannot be reached or refuses the call.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from prsync_core.types import WorkItem


@runtime_checkable
class TrackerAdapter(Protocol):
    """Reads and updates work items in an external tracker.

    Design principles:
    - The tracker is the source of truth; nothing is cached between calls.
    - Failures raise TransportError (WorkItemNotFoundError for unknown ids).
    """

    async def get_work_item(self, work_item_id: int) -> WorkItem:
        """Fetch the type and current state of a work item.

        Raises:
            WorkItemNotFoundError: If the id does not exist.
            TransportError: If the call fails.
        """
        ...

    async def get_allowed_states(self, work_item_type: str) -> set[str]:
        """Fetch the state names defined for a work item type.

        Returns:
            Set of state names. Empty if the type is unknown.

        Raises:
            TransportError: If the call fails.
        """
        ...

    async def set_work_item_state(self, work_item_id: int, state: str) -> None:
        """Patch a work item's state.

        Raises:
            TransportError: If the tracker rejects the update.
        """
        ...

    async def get_linked_work_item_ids(
        self, repository_id: str | None, pull_request_id: int | None
    ) -> list[int]:
        """Fetch ids of work items linked to a pull request, in tracker order.

        Raises:
            TransportError: If every lookup attempt fails.
        """
        ...
