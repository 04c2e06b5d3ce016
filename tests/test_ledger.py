"""Tests for the first-seen ledger."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from prsync.ledger import FirstSeenLedger
from prsync_core.adapters import LedgerAdapter
from tests.conftest import FakeClock

# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class TestRecordFirstSeen:
    """First sighting is stored once and never updated."""

    @pytest.mark.asyncio
    async def test_records_current_time(
        self, ledger: FirstSeenLedger, clock: FakeClock
    ) -> None:
        await ledger.record_first_seen(42)
        assert await ledger.first_seen(42) == clock.now
        assert len(ledger) == 1

    @pytest.mark.asyncio
    async def test_second_sighting_keeps_original(
        self, ledger: FirstSeenLedger, clock: FakeClock
    ) -> None:
        start = clock.now
        await ledger.record_first_seen(42)
        clock.advance(30)
        await ledger.record_first_seen(42)
        assert await ledger.first_seen(42) == start

    @pytest.mark.asyncio
    async def test_missing_id_is_ignored(self, ledger: FirstSeenLedger) -> None:
        await ledger.record_first_seen(None)
        await ledger.record_first_seen(0)
        assert len(ledger) == 0
        assert await ledger.first_seen(None) is None

    @pytest.mark.asyncio
    async def test_concurrent_sightings_record_once(
        self, ledger: FirstSeenLedger, clock: FakeClock
    ) -> None:
        start = clock.now

        async def sight() -> None:
            await ledger.record_first_seen(7)
            clock.advance(1)

        await asyncio.gather(*(sight() for _ in range(20)))
        assert await ledger.first_seen(7) == start
        assert len(ledger) == 1

    def test_satisfies_protocol(self, ledger: FirstSeenLedger) -> None:
        assert isinstance(ledger, LedgerAdapter)


# ---------------------------------------------------------------------------
# Suppression window
# ---------------------------------------------------------------------------


class TestIsTooSoon:
    """Early-completion window checks."""

    @pytest.mark.asyncio
    async def test_just_inside_window(
        self, ledger: FirstSeenLedger, clock: FakeClock
    ) -> None:
        await ledger.record_first_seen(42)
        clock.advance(4.999)
        assert await ledger.is_too_soon(42) is True

    @pytest.mark.asyncio
    async def test_just_outside_window(
        self, ledger: FirstSeenLedger, clock: FakeClock
    ) -> None:
        await ledger.record_first_seen(42)
        clock.advance(5.001)
        assert await ledger.is_too_soon(42) is False

    @pytest.mark.asyncio
    async def test_unknown_id(self, ledger: FirstSeenLedger) -> None:
        assert await ledger.is_too_soon(99) is False

    @pytest.mark.asyncio
    async def test_missing_id(self, ledger: FirstSeenLedger) -> None:
        assert await ledger.is_too_soon(None) is False

    @pytest.mark.asyncio
    async def test_custom_window(
        self, ledger: FirstSeenLedger, clock: FakeClock
    ) -> None:
        await ledger.record_first_seen(42)
        clock.advance(2)
        assert await ledger.is_too_soon(42, window_ms=1000) is False
        assert await ledger.is_too_soon(42, window_ms=3000) is True


# ---------------------------------------------------------------------------
# Eviction
# ---------------------------------------------------------------------------


class TestEviction:
    """TTL expiry and size cap."""

    @pytest.mark.asyncio
    async def test_expired_entries_are_pruned(self, clock: FakeClock) -> None:
        ledger = FirstSeenLedger(ttl_seconds=60, clock=clock)
        await ledger.record_first_seen(1)
        clock.advance(61)
        await ledger.record_first_seen(2)
        assert await ledger.first_seen(1) is None
        assert await ledger.first_seen(2) == clock.now

    @pytest.mark.asyncio
    async def test_expired_id_is_seen_afresh(self, clock: FakeClock) -> None:
        ledger = FirstSeenLedger(ttl_seconds=60, clock=clock)
        await ledger.record_first_seen(1)
        clock.advance(61)
        await ledger.record_first_seen(1)
        assert await ledger.first_seen(1) == clock.now

    @pytest.mark.asyncio
    async def test_oldest_evicted_beyond_max_entries(self, clock: FakeClock) -> None:
        ledger = FirstSeenLedger(max_entries=3, clock=clock)
        for pr_id in (1, 2, 3, 4):
            await ledger.record_first_seen(pr_id)
            clock.advance(1)
        assert len(ledger) == 3
        assert await ledger.first_seen(1) is None
        assert await ledger.first_seen(4) is not None


# ---------------------------------------------------------------------------
# DiskCache persistence
# ---------------------------------------------------------------------------


class TestPersistence:
    """Entries mirrored to DiskCache survive a restart."""

    @pytest.mark.asyncio
    async def test_rehydrates_entries(self, tmp_path: Path, clock: FakeClock) -> None:
        first = FirstSeenLedger(storage_path=tmp_path, clock=clock)
        await first.record_first_seen(42)
        start = clock.now
        first.close()

        clock.advance(2)
        second = FirstSeenLedger(storage_path=tmp_path, clock=clock)
        try:
            assert await second.first_seen(42) == start
            assert await second.is_too_soon(42) is True
        finally:
            second.close()

    @pytest.mark.asyncio
    async def test_rehydrate_skips_expired(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        first = FirstSeenLedger(ttl_seconds=60, storage_path=tmp_path, clock=clock)
        await first.record_first_seen(42)
        first.close()

        clock.advance(120)
        second = FirstSeenLedger(ttl_seconds=60, storage_path=tmp_path, clock=clock)
        try:
            assert len(second) == 0
        finally:
            second.close()

    def test_creates_storage_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "ledger"
        ledger = FirstSeenLedger(storage_path=path)
        try:
            assert path.is_dir()
        finally:
            ledger.close()
