"""
Pulse feed: the read model consumers use.

Holds the latest player state pushed by the host application, evaluates
local insights on demand, tracks today's synthesis and turns state
transitions into refresh requests.
"""

import asyncio
from collections.abc import Callable, Iterable

from src.application.use_cases.refresh_pulse_synthesis import (
    RefreshOutcome,
    RefreshPulseSynthesisUseCase,
)
from src.config import get_logger
from src.core.clock import Clock
from src.core.entities.insight import Insight, InsightDomain
from src.core.entities.player_state import PlayerState
from src.core.entities.pulse_event import PulseEvent, PulseEventType
from src.core.entities.synthesis import AISynthesis, CachedSynthesis, PulseHistoryEntry
from src.core.exceptions import StateNotLoadedError
from src.core.services.pulse_history import PulseHistoryStore
from src.core.services.pulse_rules import PulseRuleEngine
from src.core.services.pulse_triggers import PulseTriggerDetector
from src.core.services.synthesis_cache import SynthesisCache

logger = get_logger(__name__)

FeedListener = Callable[["PulseFeed"], None]

CONTEXT_INSIGHTS = 3

# Words that make a synthesis suggestion relevant to a domain
SUGGESTION_KEYWORDS: dict[InsightDomain, tuple[str, ...]] = {
    InsightDomain.QUESTS: ("quest", "task", "hard", "epic", "complete"),
    InsightDomain.HABITS: ("habit", "streak", "routine"),
    InsightDomain.VOCAB: ("vocab", "word", "review", "quiz", "accuracy"),
    InsightDomain.ENERGY: ("energy", "burnout", "rest", "tired"),
    InsightDomain.FOCUS: ("focus", "session", "timer"),
    InsightDomain.STREAKS: ("streak", "consecutive"),
    InsightDomain.GOALS: ("goal", "milestone"),
    InsightDomain.CROSS_DOMAIN: (),
}


class PulseFeed:
    """
    Consumer-facing view of the pulse engine.

    Insights are recomputed from the current state on every read, so they
    are never stale. The synthesis is today's cached value or None.
    """

    def __init__(
        self,
        refresher: RefreshPulseSynthesisUseCase,
        cache: SynthesisCache,
        history: PulseHistoryStore | None = None,
        rules: PulseRuleEngine | None = None,
        triggers: PulseTriggerDetector | None = None,
        clock: Clock | None = None,
        refresh_on_start: bool = True,
    ) -> None:
        self._clock = clock or Clock()
        self._refresher = refresher
        self._cache = cache
        self._history = history
        self._rules = rules or PulseRuleEngine(clock=self._clock)
        self._triggers = triggers or PulseTriggerDetector()
        self._refresh_on_start = refresh_on_start

        self._state: PlayerState | None = None
        self._synthesis: CachedSynthesis | None = None
        self._initial_refresh_pending = False
        self._listeners: list[FeedListener] = []

        refresher.set_state_source(self.current_state)
        refresher.subscribe(self._on_synthesis)

    @property
    def state(self) -> PlayerState | None:
        return self._state

    def current_state(self) -> PlayerState | None:
        """State source handed to the refresh use case."""
        return self._state

    def require_state(self) -> PlayerState:
        if self._state is None:
            raise StateNotLoadedError()
        return self._state

    def on_state_change(self, state: PlayerState) -> list[PulseEvent]:
        """
        Replace the current state and request a refresh if the transition
        warrants one.

        Returns:
            Trigger events detected for this transition
        """
        previous = self._state
        self._state = state
        events = self._triggers.on_state_change(previous, state)

        if events:
            # Later events would be dropped by the in-flight guard anyway
            self._refresher.request_refresh(events[0])
        elif self._initial_refresh_pending:
            initial = PulseEvent(type=PulseEventType.INITIAL_LOAD)
            # Stays pending when nothing could be scheduled
            if self._refresher.request_refresh(initial) is not None:
                self._initial_refresh_pending = False

        self._notify()
        return events

    @property
    def insights(self) -> list[Insight]:
        if self._state is None:
            return []
        return self._rules.evaluate(self._state)

    def insights_for(
        self,
        domains: Iterable[InsightDomain | str],
        limit: int | None = 2,
    ) -> list[Insight]:
        """
        Insights restricted to the given domains, in severity order.

        Args:
            domains: Domains to keep
            limit: Maximum number returned (None for all)
        """
        wanted = {InsightDomain(d) for d in domains}
        matching = [i for i in self.insights if i.domain in wanted]
        return matching if limit is None else matching[: max(limit, 0)]

    def suggestion_for(self, domains: Iterable[InsightDomain | str]) -> str | None:
        """
        Today's synthesis suggestion when it mentions one of the domains.

        Matching is a case-insensitive substring search over each domain's
        keywords; cross-domain has none and never matches on its own.
        """
        synthesis = self.synthesis
        if synthesis is None or not synthesis.suggestion:
            return None
        text = synthesis.suggestion.lower()
        for domain in {InsightDomain(d) for d in domains}:
            if any(word in text for word in SUGGESTION_KEYWORDS[domain]):
                return synthesis.suggestion
        return None

    @property
    def synthesis(self) -> AISynthesis | None:
        """Today's synthesis, or None once the day has changed."""
        if self._synthesis is None or self._synthesis.day != self._clock.day_key():
            return None
        return self._synthesis.data

    @property
    def last_refresh_day(self) -> str | None:
        return self._synthesis.day if self._synthesis else None

    @property
    def is_loading(self) -> bool:
        return self._refresher.is_loading

    def request_refresh(self) -> asyncio.Task[RefreshOutcome] | None:
        """Manual refresh; bypasses the cooldown."""
        return self._refresher.request_refresh(PulseEvent.manual(), force=True)

    async def wait_idle(self) -> None:
        """Wait for scheduled refreshes to finish."""
        await self._refresher.wait_idle()

    async def recent_history(self, limit: int = 7) -> list[PulseHistoryEntry]:
        """Most recent history entries, oldest first."""
        if self._history is None:
            return []
        return await self._history.read(limit)

    async def load(self) -> None:
        """
        Load the stored synthesis at startup.

        When today has no synthesis and refresh_on_start is set, a
        non-forced refresh is requested as soon as state is available.
        """
        self._synthesis = await self._cache.load()
        if self.synthesis is not None or not self._refresh_on_start:
            return

        if self._state is None:
            self._initial_refresh_pending = True
        else:
            self._refresher.request_refresh(PulseEvent(type=PulseEventType.INITIAL_LOAD))
        logger.info("pulse_feed_no_synthesis_today", deferred=self._state is None)

    def _on_synthesis(self, record: CachedSynthesis) -> None:
        self._synthesis = record
        self._notify()

    def subscribe(self, listener: FeedListener) -> Callable[[], None]:
        """Register a callback run after every state or synthesis change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.warning("pulse_feed_listener_failed", exc_info=True)

    def context_summary(self, max_insights: int = CONTEXT_INSIGHTS) -> str:
        """
        Short plain-text digest of the pulse for other prompts.

        Empty when there is neither an insight nor a synthesis.
        """
        lines: list[str] = []

        top = self.insights[:max_insights]
        if top:
            lines.append("Pulse insights:")
            for insight in top:
                lines.append(
                    f"- [{insight.severity.value}] {insight.title}: {insight.description}"
                )

        synthesis = self.synthesis
        if synthesis is not None:
            lines.append(
                f"Pulse synthesis: momentum={synthesis.momentum.value}, "
                f"burnout={synthesis.burnout_risk:.2f}"
            )
            lines.append(f"Top insight: {synthesis.top_insight}")
            lines.append(f"Suggestion: {synthesis.suggestion}")
            if synthesis.celebration_opportunity:
                lines.append(f"Celebrate: {synthesis.celebration_opportunity}")

        return "\n".join(lines)
