"""Persistence for pulse records."""

from src.infrastructure.storage.sqlite import SQLiteKeyValueStore, get_kv_store

__all__ = ["SQLiteKeyValueStore", "get_kv_store"]
