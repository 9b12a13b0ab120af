"""
Refresh Pulse Synthesis Use Case.

Serializes calls to the synthesis provider: one call in flight at a time,
at most one non-forced call per cooldown window, cache and history written
together on success, nothing written on failure.
"""

import asyncio
from collections.abc import Callable
from enum import Enum

from src.config import bind_refresh_context, clear_refresh_context, get_logger
from src.core.clock import Clock
from src.core.entities.player_state import PlayerState
from src.core.entities.pulse_event import PulseEvent
from src.core.entities.snapshot import Snapshot
from src.core.entities.synthesis import AISynthesis, CachedSynthesis
from src.core.interfaces.storage import IKeyValueStore
from src.core.interfaces.synthesis import ISynthesisProvider
from src.core.services.pulse_history import PulseHistoryStore
from src.core.services.snapshot_builder import SnapshotBuilder
from src.core.services.synthesis_cache import SynthesisCache

logger = get_logger(__name__)

SynthesisListener = Callable[[CachedSynthesis], None]


class RefreshOutcome(str, Enum):
    """What a refresh request ended up doing."""

    REFRESHED = "refreshed"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"
    SKIPPED_COOLDOWN = "skipped_cooldown"
    SKIPPED_NO_STATE = "skipped_no_state"
    FAILED = "failed"


class RefreshPulseSynthesisUseCase:
    """
    Orchestrates one synthesis refresh.

    Never raises to its caller: provider errors and timeouts are logged and
    reported as RefreshOutcome.FAILED, leaving the cached synthesis as it was.
    """

    def __init__(
        self,
        provider: ISynthesisProvider,
        store: IKeyValueStore,
        cache: SynthesisCache,
        history: PulseHistoryStore,
        state_source: Callable[[], PlayerState | None] | None = None,
        snapshot_builder: SnapshotBuilder | None = None,
        clock: Clock | None = None,
        history_context_entries: int = 7,
        timeout: float = 30.0,
    ) -> None:
        self._provider = provider
        self._store = store
        self._cache = cache
        self._history = history
        self._state_source = state_source
        self._clock = clock or Clock()
        self._snapshot_builder = snapshot_builder or SnapshotBuilder(self._clock)
        self._history_context_entries = history_context_entries
        self._timeout = timeout

        self._in_flight = False
        self._calling_provider = False
        self._listeners: list[SynthesisListener] = []
        self._tasks: set[asyncio.Task[RefreshOutcome]] = set()

    @property
    def in_flight(self) -> bool:
        """True from the moment a refresh starts until it finishes."""
        return self._in_flight

    @property
    def is_loading(self) -> bool:
        """True only while the provider call itself is pending."""
        return self._calling_provider

    def subscribe(self, listener: SynthesisListener) -> Callable[[], None]:
        """
        Register a listener for newly stored syntheses.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_state_source(self, state_source: Callable[[], PlayerState | None]) -> None:
        self._state_source = state_source

    async def execute(
        self,
        event: PulseEvent | None = None,
        force: bool = False,
    ) -> RefreshOutcome:
        """
        Run one refresh.

        Args:
            event: Trigger that requested the refresh (manual if omitted)
            force: Skip the cooldown check; manual events always force

        Returns:
            RefreshOutcome describing what happened
        """
        event = event or PulseEvent.manual()
        force = force or event.forced

        if self._in_flight:
            logger.info("pulse_refresh_skipped", reason="in_flight", trigger=event.type.value)
            return RefreshOutcome.SKIPPED_IN_FLIGHT

        # Set before the first await so concurrent callers see it
        self._in_flight = True
        bind_refresh_context(trigger=event.type.value, forced=force)
        try:
            return await self._refresh(force)
        finally:
            self._calling_provider = False
            self._in_flight = False
            clear_refresh_context("trigger", "forced")

    async def _refresh(self, force: bool) -> RefreshOutcome:
        if not force and await self._cache.is_cooling_down():
            logger.info("pulse_refresh_skipped", reason="cooldown")
            return RefreshOutcome.SKIPPED_COOLDOWN

        state = self._state_source() if self._state_source else None
        if state is None:
            logger.info("pulse_refresh_skipped", reason="no_state")
            return RefreshOutcome.SKIPPED_NO_STATE

        snapshot = self._snapshot_builder.build(state)
        history = await self._history.read(self._history_context_entries)

        self._calling_provider = True
        try:
            synthesis = await asyncio.wait_for(
                self._provider.synthesize(snapshot, history),
                timeout=self._timeout,
            )
        except TimeoutError:
            logger.warning("pulse_synthesis_timeout", timeout=self._timeout)
            return RefreshOutcome.FAILED
        except Exception as e:
            logger.warning(
                "pulse_synthesis_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return RefreshOutcome.FAILED
        finally:
            self._calling_provider = False

        record = await self._persist(synthesis, snapshot)
        self._publish(record)

        logger.info(
            "pulse_refresh_completed",
            day=record.day,
            momentum=synthesis.momentum.value,
            burnout_risk=synthesis.burnout_risk,
            history_days=len(history),
        )
        return RefreshOutcome.REFRESHED

    async def _persist(self, synthesis: AISynthesis, snapshot: Snapshot) -> CachedSynthesis:
        """
        Write cache and history in one storage call; failures are logged only.

        When the stored history cannot be read nothing is written, so a
        read error never overwrites the retained days.
        """
        record = self._cache.prepare(synthesis)
        self._cache.remember(record)
        try:
            entries = await self._history.prepare_append(record.day, synthesis, snapshot)
            await self._store.set_many(
                {
                    self._cache.key: record.model_dump_json(),
                    self._history.key: self._history.dumps(entries),
                }
            )
        except Exception as e:
            logger.warning("pulse_persist_failed", error=str(e), error_type=type(e).__name__)
        return record

    def _publish(self, record: CachedSynthesis) -> None:
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.warning("pulse_listener_failed", exc_info=True)

    def request_refresh(
        self,
        event: PulseEvent | None = None,
        force: bool = False,
    ) -> asyncio.Task[RefreshOutcome] | None:
        """
        Schedule execute() in the background and return immediately.

        Returns:
            The scheduled task, or None when a refresh is already running
            or the caller is not inside a running event loop
        """
        trigger = (event or PulseEvent.manual()).type.value
        if self._in_flight:
            logger.debug("pulse_refresh_dropped", reason="in_flight", trigger=trigger)
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("pulse_refresh_dropped", reason="no_loop", trigger=trigger)
            return None

        task = loop.create_task(self.execute(event, force))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every scheduled refresh to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
