"""
SQLite implementation of key-value storage.

Backs the pulse synthesis cache and history records.
"""

import aiosqlite

from src.config import get_logger
from src.core.exceptions import DatabaseError
from src.core.interfaces.storage import IKeyValueStore
from src.infrastructure.storage.sqlite.connection import ConnectionPool, get_pool

logger = get_logger(__name__)

_UPSERT = """
    INSERT INTO pulse_kv (key, value, updated_at)
    VALUES (?, ?, datetime('now'))
    ON CONFLICT(key) DO UPDATE SET
        value = excluded.value,
        updated_at = excluded.updated_at
"""


class SQLiteKeyValueStore(IKeyValueStore):
    """Key-value records in the pulse_kv table."""

    def __init__(self, pool: ConnectionPool | None = None) -> None:
        self._pool = pool

    async def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = await get_pool()
        return self._pool

    async def get(self, key: str) -> str | None:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                cursor = await conn.execute(
                    "SELECT value FROM pulse_kv WHERE key = ?", (key,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise DatabaseError("kv_get", str(e)) from e
        return None if row is None else row["value"]

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: dict[str, str]) -> None:
        """Write every key in one transaction."""
        if not values:
            return
        pool = await self._get_pool()
        try:
            async with pool.transaction() as conn:
                await conn.executemany(_UPSERT, list(values.items()))
        except aiosqlite.Error as e:
            raise DatabaseError("kv_set", str(e)) from e
        logger.debug("kv_written", keys=list(values))
