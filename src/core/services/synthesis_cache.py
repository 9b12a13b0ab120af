"""
Synthesis cache and cooldown controller.

Two independent gates over one persisted record:
- day validity decides whether the stored synthesis is shown as today's;
- the cooldown decides whether a new external call is allowed.
"""

from pydantic import ValidationError

from src.config import get_logger
from src.core.clock import Clock
from src.core.entities.synthesis import AISynthesis, CachedSynthesis
from src.core.interfaces.storage import IKeyValueStore

logger = get_logger(__name__)

DEFAULT_CACHE_KEY = "nexus-pulse-ai"


class SynthesisCache:
    """
    Persists the latest synthesis keyed by calendar day.

    Read failures and corrupt records count as a miss. Write failures are
    logged and ignored.
    """

    def __init__(
        self,
        store: IKeyValueStore,
        clock: Clock | None = None,
        cooldown_seconds: float = 300,
        key: str = DEFAULT_CACHE_KEY,
    ) -> None:
        self._store = store
        self._clock = clock or Clock()
        self._cooldown_ms = int(cooldown_seconds * 1000)
        self._key = key
        # Last timestamp written by this process, kept in case storage is down
        self._last_timestamp: int | None = None

    @property
    def key(self) -> str:
        return self._key

    async def load(self) -> CachedSynthesis | None:
        """Read the stored record regardless of its day."""
        try:
            raw = await self._store.get(self._key)
        except Exception:
            logger.warning("pulse_cache_read_failed", key=self._key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return CachedSynthesis.model_validate_json(raw)
        except (ValidationError, ValueError):
            logger.warning("pulse_cache_corrupt", key=self._key)
            return None

    async def get_cached(self) -> AISynthesis | None:
        """Stored synthesis if it was stored today, else None."""
        record = await self.load()
        if record is None or record.day != self._clock.day_key():
            return None
        return record.data

    async def is_cooling_down(self) -> bool:
        """True while less than the cooldown window has passed since the last store."""
        record = await self.load()
        stamps = [t for t in (self._last_timestamp, record and record.timestamp) if t]
        if not stamps:
            return False
        return self._clock.epoch_ms() - max(stamps) < self._cooldown_ms

    def prepare(self, synthesis: AISynthesis) -> CachedSynthesis:
        """Build the record Store would write, without writing it."""
        return CachedSynthesis(
            data=synthesis,
            day=self._clock.day_key(),
            timestamp=self._clock.epoch_ms(),
        )

    def remember(self, record: CachedSynthesis) -> None:
        self._last_timestamp = record.timestamp

    async def store(self, synthesis: AISynthesis) -> CachedSynthesis:
        """Overwrite the cached entry with the current day and time."""
        record = self.prepare(synthesis)
        self.remember(record)
        try:
            await self._store.set(self._key, record.model_dump_json())
        except Exception:
            logger.warning("pulse_cache_write_failed", key=self._key, exc_info=True)
        return record
