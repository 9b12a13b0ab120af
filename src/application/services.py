"""
Service factory functions for dependency injection.

This module provides factory functions that wire infrastructure
implementations to core services. Use cases should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from src.application.pulse_feed import PulseFeed
from src.application.use_cases.refresh_pulse_synthesis import RefreshPulseSynthesisUseCase
from src.config import get_settings
from src.core.clock import Clock
from src.core.services import (
    PulseHistoryStore,
    PulseRuleEngine,
    PulseTriggerDetector,
    SnapshotBuilder,
    SynthesisCache,
)

if TYPE_CHECKING:
    from src.core.interfaces import IKeyValueStore, ISynthesisProvider


# Singleton service instances
_pulse_feed: PulseFeed | None = None


async def _default_store() -> "IKeyValueStore":
    # Lazy import infrastructure to avoid circular imports
    from src.infrastructure.storage.sqlite import get_kv_store

    return await get_kv_store()


def _default_provider() -> "ISynthesisProvider":
    from src.infrastructure.llm import LLMSynthesisProvider, get_llm_provider

    return LLMSynthesisProvider(get_llm_provider())


async def get_pulse_feed(
    store: "IKeyValueStore | None" = None,
    provider: "ISynthesisProvider | None" = None,
    clock: Clock | None = None,
) -> PulseFeed:
    """
    Get or create the PulseFeed and its refresh use case.

    Creates infrastructure dependencies if not provided. Overrides produce
    a fresh, unshared instance.

    Args:
        store: Optional key-value store override
        provider: Optional synthesis provider override
        clock: Optional clock override

    Returns:
        Configured PulseFeed
    """
    global _pulse_feed

    overridden = store is not None or provider is not None or clock is not None
    if _pulse_feed is not None and not overridden:
        return _pulse_feed

    settings = get_settings().pulse
    clock = clock or Clock()
    store = store or await _default_store()

    cache = SynthesisCache(
        store,
        clock=clock,
        cooldown_seconds=settings.cooldown_seconds,
        key=settings.cache_key,
    )
    history = PulseHistoryStore(
        store,
        max_entries=settings.history_max_entries,
        key=settings.history_key,
    )

    refresher = RefreshPulseSynthesisUseCase(
        provider=provider or _default_provider(),
        store=store,
        cache=cache,
        history=history,
        snapshot_builder=SnapshotBuilder(clock),
        clock=clock,
        history_context_entries=settings.history_context_entries,
        timeout=settings.synthesis_timeout,
    )

    feed = PulseFeed(
        refresher=refresher,
        cache=cache,
        history=history,
        rules=PulseRuleEngine(clock=clock, streak_milestones=settings.streak_milestones),
        triggers=PulseTriggerDetector(batch_threshold=settings.batch_complete_threshold),
        clock=clock,
        refresh_on_start=settings.refresh_on_start,
    )

    if not overridden:
        _pulse_feed = feed

    return feed


def reset_services() -> None:
    """Reset all singleton instances (for testing)."""
    global _pulse_feed
    _pulse_feed = None
