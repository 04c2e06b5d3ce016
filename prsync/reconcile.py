"""Reconciliation of pull request events with linked work items."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prsync.decision import decide_for_event
from prsync.gate import TransitionGate
from prsync_core.types import (
    CanonicalState,
    Outcome,
    PullRequestEvent,
    ReconcileResult,
    TransportError,
    WorkItemOutcome,
    WorkItemUpdateError,
)

if TYPE_CHECKING:
    from prsync_core.adapters.ledger import LedgerAdapter
    from prsync_core.adapters.tracker import TrackerAdapter

logger = logging.getLogger(__name__)

DEFAULT_EARLY_COMPLETION_WINDOW_MS = 5000


class Reconciler:
    """Applies a pull request's lifecycle to the work items linked to it.

    Each linked work item is handled independently: a failure on one is
    recorded in the result and the remaining items are still processed.
    """

    def __init__(
        self,
        tracker: TrackerAdapter,
        ledger: LedgerAdapter,
        early_completion_window_ms: int = DEFAULT_EARLY_COMPLETION_WINDOW_MS,
    ) -> None:
        self._tracker = tracker
        self._ledger = ledger
        self._gate = TransitionGate(tracker)
        self._window_ms = early_completion_window_ms

    async def linked_work_item_ids(self, event: PullRequestEvent) -> list[int]:
        """Work item ids linked to the event's pull request.

        Ids carried on the payload win. Otherwise the tracker is asked; a
        failed lookup counts as no links.
        """
        if event.work_item_ids:
            return list(event.work_item_ids)
        try:
            return await self._tracker.get_linked_work_item_ids(
                event.repository_id, event.pull_request_id
            )
        except TransportError as e:
            logger.warning(
                "Linked work item lookup failed for pull request %s: %s",
                event.pull_request_id,
                e,
            )
            return []
        except Exception:
            logger.exception(
                "Unexpected error looking up work items for pull request %s",
                event.pull_request_id,
            )
            return []

    async def _process(
        self, work_item_id: int, desired: CanonicalState
    ) -> WorkItemOutcome:
        try:
            updated = await self._gate.apply_if_legal(work_item_id, desired)
        except WorkItemUpdateError as e:
            logger.error("Failed to update work item %s: %s", work_item_id, e)
            return WorkItemOutcome(id=work_item_id, failed=True, error=str(e))
        except TransportError as e:
            logger.warning("Skipping work item %s: %s", work_item_id, e)
            return WorkItemOutcome(id=work_item_id, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error processing work item %s", work_item_id)
            return WorkItemOutcome(id=work_item_id, failed=True, error=str(e))
        return WorkItemOutcome(id=work_item_id, updated=updated)

    async def handle_event(self, event: PullRequestEvent) -> ReconcileResult:
        """Handle one pull request notification.

        Args:
            event: Parsed service hook event.

        Returns:
            ReconcileResult describing what was done.
        """
        logger.info(
            "Webhook received: eventType=%s status=%s repo=%s prId=%s",
            event.event_type,
            event.status,
            event.repository_name,
            event.pull_request_id,
        )

        await self._ledger.record_first_seen(event.pull_request_id)

        desired = decide_for_event(event)
        if desired is None:
            logger.info("No state change for status %r", event.status)
            return ReconcileResult(outcome=Outcome.NO_STATE_CHANGE)

        if desired is CanonicalState.COMPLETED and await self._ledger.is_too_soon(
            event.pull_request_id, self._window_ms
        ):
            logger.info(
                "Ignoring early completion of pull request %s (out-of-order guard)",
                event.pull_request_id,
            )
            return ReconcileResult(
                outcome=Outcome.IGNORED_EARLY_COMPLETED, desired_state=desired
            )

        ids = await self.linked_work_item_ids(event)
        logger.info("Linked work items: %s", ids)
        if not ids:
            return ReconcileResult(
                outcome=Outcome.NO_LINKED_WORK_ITEMS, desired_state=desired
            )

        result = ReconcileResult(outcome=Outcome.UPDATED, desired_state=desired)
        for work_item_id in ids:
            result.work_items.append(await self._process(work_item_id, desired))

        logger.info(result.message)
        return result
