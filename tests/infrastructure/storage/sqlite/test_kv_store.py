"""Tests for SQLiteKeyValueStore."""

import pytest

from src.core.entities.player_state import PlayerState
from src.core.exceptions import DatabaseError
from src.core.interfaces.storage import IKeyValueStore
from src.core.services.pulse_history import PulseHistoryStore
from src.core.services.snapshot_builder import SnapshotBuilder
from src.core.services.synthesis_cache import SynthesisCache
from src.infrastructure.storage.sqlite.connection import ConnectionPool
from src.infrastructure.storage.sqlite.kv_store import SQLiteKeyValueStore
from src.infrastructure.storage.sqlite.migrations import run_migrations
from tests.factories import make_synthesis


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "pulse.db"


@pytest.fixture
async def pool(db_path):
    await run_migrations(db_path)
    pool = ConnectionPool(db_path, pool_size=2)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture
def store(pool) -> SQLiteKeyValueStore:
    return SQLiteKeyValueStore(pool)


class TestSQLiteKeyValueStore:
    @pytest.mark.asyncio
    async def test_missing_key(self, store):
        assert await store.get("nexus-pulse-ai") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, store):
        await store.set("nexus-pulse-ai", '{"day": "2024-01-02"}')
        assert await store.get("nexus-pulse-ai") == '{"day": "2024-01-02"}'

    @pytest.mark.asyncio
    async def test_overwrite(self, store):
        await store.set("k", "one")
        await store.set("k", "two")
        assert await store.get("k") == "two"

    @pytest.mark.asyncio
    async def test_set_many(self, store):
        await store.set_many({"a": "1", "b": "2"})
        assert await store.get("a") == "1"
        assert await store.get("b") == "2"

    @pytest.mark.asyncio
    async def test_set_many_is_all_or_nothing(self, store):
        await store.set("a", "old")

        with pytest.raises(DatabaseError):
            await store.set_many({"a": "new", "b": None})

        assert await store.get("a") == "old"
        assert await store.get("b") is None

    @pytest.mark.asyncio
    async def test_set_many_empty(self, store):
        await store.set_many({})

    @pytest.mark.asyncio
    async def test_survives_reopen(self, store, pool, db_path):
        await store.set("k", "v")
        await pool.close()

        reopened = ConnectionPool(db_path, pool_size=1)
        try:
            assert await SQLiteKeyValueStore(reopened).get("k") == "v"
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_missing_table_raises_database_error(self, tmp_path):
        pool = ConnectionPool(tmp_path / "empty.db", pool_size=1)
        try:
            with pytest.raises(DatabaseError) as exc_info:
                await SQLiteKeyValueStore(pool).get("k")
            assert exc_info.value.details["operation"] == "kv_get"
        finally:
            await pool.close()


class TestPulseRecordsOnSQLite:
    @pytest.mark.asyncio
    async def test_cache_and_history_round_trip(self, store, clock):
        cache = SynthesisCache(store, clock)
        history = PulseHistoryStore(store)
        snapshot = SnapshotBuilder(clock).build(PlayerState(character_name="Rin"))

        record = cache.prepare(make_synthesis())
        entries = await history.prepare_append(record.day, record.data, snapshot)
        await store.set_many(
            {cache.key: record.model_dump_json(), history.key: history.dumps(entries)}
        )

        assert await cache.get_cached() == make_synthesis()
        assert await history.read(7) == entries
        assert await cache.is_cooling_down() is True


def test_port_surface():
    assert IKeyValueStore.__abstractmethods__ == {"get", "set", "set_many"}
    assert not hasattr(SQLiteKeyValueStore, "delete")
