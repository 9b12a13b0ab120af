"""Tests for PulseHistoryStore."""

import json
from datetime import date, timedelta

import pytest

from src.core.entities.player_state import PlayerState
from src.core.services.pulse_history import DEFAULT_HISTORY_KEY, PulseHistoryStore
from src.core.services.snapshot_builder import SnapshotBuilder
from tests.factories import make_synthesis


@pytest.fixture
def history(kv_store) -> PulseHistoryStore:
    return PulseHistoryStore(kv_store, max_entries=30)


@pytest.fixture
def snapshot(clock):
    return SnapshotBuilder(clock).build(PlayerState(character_name="Rin"))


def _day(offset: int) -> str:
    return (date(2024, 1, 1) + timedelta(days=offset)).isoformat()


class TestAppend:
    async def test_append_and_read(self, history, snapshot):
        await history.append("2024-01-01", make_synthesis(), snapshot)

        entries = await history.read(7)
        assert len(entries) == 1
        assert entries[0].day == "2024-01-01"
        assert entries[0].snapshot == snapshot

    async def test_same_day_replaces(self, history, snapshot):
        await history.append("2024-01-01", make_synthesis(top_insight="first"), snapshot)
        await history.append("2024-01-01", make_synthesis(top_insight="second"), snapshot)

        entries = await history.load()
        assert len(entries) == 1
        assert entries[0].synthesis.top_insight == "second"

    async def test_bounded_to_most_recent_days(self, history, snapshot):
        for i in range(31):
            await history.append(_day(i), make_synthesis(), snapshot)

        entries = await history.load()
        assert len(entries) == 30
        assert entries[0].day == _day(1)
        assert entries[-1].day == _day(30)

    async def test_out_of_order_days_kept_sorted(self, history, snapshot):
        await history.append("2024-01-03", make_synthesis(), snapshot)
        await history.append("2024-01-01", make_synthesis(), snapshot)

        assert [e.day for e in await history.load()] == ["2024-01-01", "2024-01-03"]

    async def test_write_failure_is_swallowed(self, history, kv_store, snapshot):
        kv_store.fail_writes = True

        entries = await history.append("2024-01-01", make_synthesis(), snapshot)

        assert len(entries) == 1
        assert DEFAULT_HISTORY_KEY not in kv_store.data

    async def test_read_failure_keeps_stored_days(self, history, kv_store, snapshot):
        for i in range(10):
            await history.append(_day(i), make_synthesis(), snapshot)
        writes_before = kv_store.writes

        kv_store.fail_reads = True
        assert await history.append(_day(10), make_synthesis(), snapshot) == []
        kv_store.fail_reads = False

        assert kv_store.writes == writes_before
        assert len(await history.load()) == 10

    async def test_prepare_append_raises_on_read_failure(self, history, kv_store, snapshot):
        kv_store.fail_reads = True

        with pytest.raises(OSError):
            await history.prepare_append("2024-01-01", make_synthesis(), snapshot)


class TestRead:
    async def test_read_limit_returns_newest_oldest_first(self, history, snapshot):
        for i in range(10):
            await history.append(_day(i), make_synthesis(), snapshot)

        entries = await history.read(3)
        assert [e.day for e in entries] == [_day(7), _day(8), _day(9)]

    async def test_read_zero(self, history, snapshot):
        await history.append("2024-01-01", make_synthesis(), snapshot)
        assert await history.read(0) == []

    async def test_read_failure_is_empty(self, history, kv_store):
        kv_store.fail_reads = True
        assert await history.read(7) == []

    @pytest.mark.parametrize("raw", ["not json", '{"day": "2024-01-01"}'])
    async def test_corrupt_list_is_empty(self, history, kv_store, raw):
        kv_store.data[DEFAULT_HISTORY_KEY] = raw
        assert await history.load() == []

    async def test_corrupt_entry_dropped(self, history, kv_store, snapshot):
        await history.append("2024-01-01", make_synthesis(), snapshot)
        items = json.loads(kv_store.data[DEFAULT_HISTORY_KEY])
        items.append({"day": "2024-01-02", "synthesis": {"momentum": "sideways"}})
        kv_store.data[DEFAULT_HISTORY_KEY] = json.dumps(items)

        assert [e.day for e in await history.load()] == ["2024-01-01"]


class TestPrepare:
    async def test_prepare_append_does_not_write(self, history, kv_store, snapshot):
        entries = await history.prepare_append("2024-01-01", make_synthesis(), snapshot)

        assert len(entries) == 1
        assert kv_store.writes == 0

    async def test_dumps_round_trip(self, history, kv_store, snapshot):
        entries = await history.prepare_append("2024-01-01", make_synthesis(), snapshot)
        kv_store.data[DEFAULT_HISTORY_KEY] = PulseHistoryStore.dumps(entries)

        assert await history.load() == entries
