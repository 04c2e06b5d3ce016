"""First-seen ledger for pull request events.

Records the wall-clock time each pull request id was first observed so the
reconciler can drop a "completed" notification that arrives just after the
first event for that pull request (out-of-order delivery). Entries expire
after a TTL and the ledger is capped at a maximum size, oldest evicted first.

An optional DiskCache directory mirrors entries so suppression survives a
restart. Storage is keyed by pull request id; values are epoch seconds.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from pathlib import Path

import diskcache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
DEFAULT_MAX_ENTRIES = 10000


class FirstSeenLedger:
    """Pull request id → first-seen timestamp, bounded by TTL and size.

    Thread-safe via asyncio.Lock: concurrent events for the same pull request
    record the first-seen timestamp exactly once.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        storage_path: Path | str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the ledger.

        Args:
            ttl_seconds: Age after which an entry is forgotten.
            max_entries: Upper bound on remembered pull requests.
            storage_path: DiskCache directory. None keeps entries in memory only.
            clock: Returns the current time in epoch seconds.
        """
        self._ttl = ttl_seconds
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: OrderedDict[int, float] = OrderedDict()
        self._lock: asyncio.Lock = asyncio.Lock()

        self._disk: diskcache.Cache | None = None
        if storage_path:
            path = Path(storage_path)
            path.mkdir(parents=True, exist_ok=True)
            self._disk = diskcache.Cache(str(path))
            self._rehydrate()

    def __len__(self) -> int:
        return len(self._entries)

    def _rehydrate(self) -> None:
        """Load unexpired entries from DiskCache, oldest first."""
        assert self._disk is not None
        cutoff = self._clock() - self._ttl
        loaded: list[tuple[int, float]] = []
        for key in list(self._disk):
            try:
                seen_at = float(self._disk[key])
                pr_id = int(key)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Dropping corrupt ledger entry %s: %s", key, exc)
                self._disk.pop(key, None)
                continue
            if seen_at > cutoff:
                loaded.append((pr_id, seen_at))
            else:
                self._disk.pop(key, None)

        for pr_id, seen_at in sorted(loaded, key=lambda pair: pair[1]):
            self._entries[pr_id] = seen_at
        self._enforce_size()

        if loaded:
            logger.info("Rehydrated %d ledger entries from disk", len(self._entries))

    def _prune_expired(self, now: float) -> None:
        """Drop entries older than the TTL. Called under the lock."""
        cutoff = now - self._ttl
        expired = 0
        while self._entries:
            pr_id, seen_at = next(iter(self._entries.items()))
            if seen_at > cutoff:
                break
            self._entries.popitem(last=False)
            if self._disk is not None:
                self._disk.pop(pr_id, None)
            expired += 1
        if expired:
            logger.debug("Pruned %d expired ledger entries", expired)

    def _enforce_size(self) -> None:
        while len(self._entries) > self._max_entries:
            pr_id, _ = self._entries.popitem(last=False)
            if self._disk is not None:
                self._disk.pop(pr_id, None)

    async def record_first_seen(self, pull_request_id: int | None) -> None:
        """Remember when a pull request was first observed.

        Later calls for the same id leave the original timestamp untouched.
        Falsy ids (missing from the payload) are ignored.
        """
        if not pull_request_id:
            return
        async with self._lock:
            now = self._clock()
            self._prune_expired(now)
            if pull_request_id in self._entries:
                return
            self._entries[pull_request_id] = now
            if self._disk is not None:
                self._disk.set(pull_request_id, now, expire=self._ttl)
            self._enforce_size()
        logger.debug("First sighting of pull request %s", pull_request_id)

    async def first_seen(self, pull_request_id: int | None) -> float | None:
        """Return the first-seen timestamp for an id, or None."""
        if not pull_request_id:
            return None
        async with self._lock:
            return self._entries.get(pull_request_id)

    async def is_too_soon(
        self, pull_request_id: int | None, window_ms: int = 5000
    ) -> bool:
        """Check whether an id was first seen less than ``window_ms`` ago.

        Args:
            pull_request_id: Pull request id from the event.
            window_ms: Suppression window in milliseconds.

        Returns:
            False when the id is missing or has no entry.
        """
        seen_at = await self.first_seen(pull_request_id)
        if seen_at is None:
            return False
        elapsed_ms = (self._clock() - seen_at) * 1000.0
        return elapsed_ms < window_ms

    def close(self) -> None:
        """Close the DiskCache handle, if any."""
        if self._disk is not None:
            self._disk.close()
            self._disk = None
