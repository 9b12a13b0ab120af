"""SQLite backing for the key-value port."""

from src.infrastructure.storage.sqlite.connection import ConnectionPool, close_pool, get_pool
from src.infrastructure.storage.sqlite.kv_store import SQLiteKeyValueStore

_kv_store: SQLiteKeyValueStore | None = None


async def get_kv_store() -> SQLiteKeyValueStore:
    global _kv_store
    if _kv_store is None:
        _kv_store = SQLiteKeyValueStore()
    return _kv_store


__all__ = ["ConnectionPool", "SQLiteKeyValueStore", "close_pool", "get_kv_store", "get_pool"]
