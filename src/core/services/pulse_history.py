"""
Pulse history store.

Bounded, one-entry-per-day log of syntheses and their snapshots, used as
longitudinal context for the next synthesis call.
"""

import json

from pydantic import ValidationError

from src.config import get_logger
from src.core.entities.snapshot import Snapshot
from src.core.entities.synthesis import AISynthesis, PulseHistoryEntry
from src.core.interfaces.storage import IKeyValueStore

logger = get_logger(__name__)

DEFAULT_HISTORY_KEY = "nexus-pulse-history"


class PulseHistoryStore:
    """Append-or-replace per day, keep the most recent `max_entries` days."""

    def __init__(
        self,
        store: IKeyValueStore,
        max_entries: int = 30,
        key: str = DEFAULT_HISTORY_KEY,
    ) -> None:
        self._store = store
        self._max_entries = max_entries
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    async def load(self, strict: bool = False) -> list[PulseHistoryEntry]:
        """
        Read all stored entries in day order.

        A corrupt list reads as empty and corrupt entries are dropped.
        Unreadable storage also reads as empty unless `strict`, in which
        case the storage error propagates so writers never mistake it for
        an empty history.
        """
        try:
            raw = await self._store.get(self._key)
        except Exception:
            if strict:
                raise
            logger.warning("pulse_history_read_failed", key=self._key, exc_info=True)
            return []
        if raw is None:
            return []

        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning("pulse_history_corrupt", key=self._key)
            return []
        if not isinstance(items, list):
            logger.warning("pulse_history_corrupt", key=self._key)
            return []

        entries: list[PulseHistoryEntry] = []
        for item in items:
            try:
                entries.append(PulseHistoryEntry.model_validate(item))
            except ValidationError:
                logger.warning("pulse_history_entry_dropped", key=self._key)
        return sorted(entries, key=lambda e: e.day)

    def merge(
        self, entries: list[PulseHistoryEntry], entry: PulseHistoryEntry
    ) -> list[PulseHistoryEntry]:
        """Insert or replace `entry` by day, then trim to the newest days."""
        merged = list(entries)
        for i, existing in enumerate(merged):
            if existing.day == entry.day:
                merged[i] = entry
                break
        else:
            merged.append(entry)
        merged.sort(key=lambda e: e.day)
        return merged[-self._max_entries :]

    async def prepare_append(
        self, day: str, synthesis: AISynthesis, snapshot: Snapshot
    ) -> list[PulseHistoryEntry]:
        """
        Entries append() would write, without writing them.

        Raises whatever the store raised when the stored history cannot be read.
        """
        entry = PulseHistoryEntry(day=day, synthesis=synthesis, snapshot=snapshot)
        return self.merge(await self.load(strict=True), entry)

    async def append(
        self, day: str, synthesis: AISynthesis, snapshot: Snapshot
    ) -> list[PulseHistoryEntry]:
        """
        Record the synthesis for a day.

        Args:
            day: Day key (ISO date)
            synthesis: Synthesis produced that day
            snapshot: Snapshot it was produced from

        Returns:
            The retained entries after insertion, or an empty list when
            the stored history could not be read and nothing was written
        """
        try:
            entries = await self.prepare_append(day, synthesis, snapshot)
        except Exception:
            logger.warning("pulse_history_write_skipped", key=self._key, exc_info=True)
            return []
        try:
            await self._store.set(self._key, self.dumps(entries))
        except Exception:
            logger.warning("pulse_history_write_failed", key=self._key, exc_info=True)
        return entries

    async def read(self, limit: int) -> list[PulseHistoryEntry]:
        """Most recent `limit` entries, oldest first."""
        if limit <= 0:
            return []
        return (await self.load())[-limit:]

    @staticmethod
    def dumps(entries: list[PulseHistoryEntry]) -> str:
        return json.dumps([e.model_dump(mode="json") for e in entries])
