"""Tests for PulseFeed."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.application.services import get_pulse_feed
from src.application.use_cases.refresh_pulse_synthesis import RefreshOutcome
from src.config import reset_settings
from src.core.entities.insight import InsightDomain
from src.core.entities.player_state import PlayerState
from src.core.entities.pulse_event import PulseEventType
from src.core.entities.synthesis import Momentum
from src.core.exceptions import StateNotLoadedError
from src.core.interfaces.synthesis import ISynthesisProvider
from src.core.services.synthesis_cache import SynthesisCache
from tests.factories import (
    TODAY,
    completed_task,
    habit,
    make_synthesis,
    pending_task,
    reflection,
)


@pytest.fixture
def provider() -> AsyncMock:
    mock = AsyncMock(spec=ISynthesisProvider)
    mock.synthesize.return_value = make_synthesis()
    return mock


@pytest.fixture
async def feed(kv_store, provider, clock):
    return await get_pulse_feed(store=kv_store, provider=provider, clock=clock)


def _batch(before: PlayerState) -> PlayerState:
    return before.model_copy(update={"tasks": [completed_task(f"t{i}") for i in range(3)]})


@pytest.fixture
def first_state() -> PlayerState:
    return PlayerState(
        character_name="Rin",
        hp=10,
        tasks=[pending_task(f"t{i}") for i in range(3)],
        habits=[habit("Reading", streak=8)],
    )


class TestState:
    async def test_no_state(self, feed):
        assert feed.state is None
        assert feed.insights == []
        with pytest.raises(StateNotLoadedError):
            feed.require_state()

    async def test_insights_follow_state(self, feed, first_state):
        feed.on_state_change(first_state)

        assert [i.id for i in feed.insights] == ["habit-streak-risk", "hp-critical"]

        healed = first_state.model_copy(update={"hp": 100, "habits": []})
        feed.on_state_change(healed)
        assert feed.insights == []

    async def test_insights_for_domains(self, feed, first_state):
        feed.on_state_change(first_state)

        habits_only = feed.insights_for([InsightDomain.HABITS])
        assert [i.id for i in habits_only] == ["habit-streak-risk"]
        assert len(feed.insights_for(["habits", "quests"], limit=1)) == 1
        assert len(feed.insights_for(["habits", "quests"], limit=None)) == 2
        assert feed.insights_for(["vocab"]) == []

    def test_state_change_outside_event_loop(self, kv_store, provider, clock, first_state):
        feed = asyncio.run(get_pulse_feed(store=kv_store, provider=provider, clock=clock))
        seen = []
        feed.subscribe(lambda f: seen.append(f.state))
        batch = _batch(first_state)

        feed.on_state_change(first_state)
        events = feed.on_state_change(batch)

        assert [e.type for e in events] == [PulseEventType.BATCH_COMPLETE]
        assert seen == [first_state, batch]
        assert feed.state == batch
        provider.synthesize.assert_not_called()

    async def test_first_state_does_not_refresh(self, feed, provider, first_state):
        events = feed.on_state_change(first_state)
        await feed.wait_idle()

        assert events == []
        provider.synthesize.assert_not_awaited()


class TestTriggers:
    async def test_batch_complete_refreshes(self, feed, provider, first_state):
        feed.on_state_change(first_state)

        events = feed.on_state_change(_batch(first_state))
        await feed.wait_idle()

        assert [e.type for e in events] == [PulseEventType.BATCH_COMPLETE]
        provider.synthesize.assert_awaited_once()
        assert feed.synthesis == make_synthesis()
        assert feed.last_refresh_day == "2024-01-02"
        assert feed.is_loading is False

    async def test_second_trigger_inside_cooldown(self, feed, provider, first_state, clock):
        feed.on_state_change(first_state)
        second = _batch(first_state)
        feed.on_state_change(second)
        await feed.wait_idle()

        clock.advance(seconds=60)
        feed.on_state_change(second.model_copy(update={"reflection_notes": [reflection(0, 4)]}))
        await feed.wait_idle()

        assert provider.synthesize.await_count == 1

    async def test_manual_refresh_bypasses_cooldown(self, feed, provider, first_state):
        feed.on_state_change(first_state)
        feed.on_state_change(_batch(first_state))
        await feed.wait_idle()

        task = feed.request_refresh()
        assert await task == RefreshOutcome.REFRESHED
        assert provider.synthesize.await_count == 2

    async def test_failed_refresh_keeps_synthesis_empty(self, feed, provider, first_state):
        provider.synthesize.side_effect = RuntimeError("model crashed")
        feed.on_state_change(first_state)
        feed.on_state_change(_batch(first_state))
        await feed.wait_idle()

        assert feed.synthesis is None
        assert feed.insights


class TestLoad:
    async def test_load_today(self, kv_store, provider, clock):
        await SynthesisCache(kv_store, clock).store(make_synthesis(momentum=Momentum.RISING))
        feed = await get_pulse_feed(store=kv_store, provider=provider, clock=clock)

        await feed.load()
        feed.on_state_change(PlayerState())
        await feed.wait_idle()

        assert feed.synthesis.momentum == Momentum.RISING
        provider.synthesize.assert_not_awaited()

    async def test_stale_synthesis_triggers_refresh_when_state_arrives(
        self, kv_store, provider, clock
    ):
        clock.advance(days=-1)
        await SynthesisCache(kv_store, clock).store(make_synthesis(top_insight="old"))
        clock.advance(days=1)
        feed = await get_pulse_feed(store=kv_store, provider=provider, clock=clock)

        await feed.load()
        assert feed.synthesis is None
        assert feed.last_refresh_day == "2024-01-01"
        provider.synthesize.assert_not_awaited()

        feed.on_state_change(PlayerState())
        await feed.wait_idle()

        provider.synthesize.assert_awaited_once()
        assert feed.synthesis == make_synthesis()

    async def test_initial_refresh_only_once(self, feed, provider):
        await feed.load()
        feed.on_state_change(PlayerState())
        await feed.wait_idle()
        feed.on_state_change(PlayerState(streak=1))
        await feed.wait_idle()

        assert provider.synthesize.await_count == 1

    async def test_load_with_state_refreshes_immediately(self, feed, provider):
        feed.on_state_change(PlayerState())

        await feed.load()
        await feed.wait_idle()

        provider.synthesize.assert_awaited_once()

    async def test_refresh_on_start_disabled(self, kv_store, provider, clock, monkeypatch):
        monkeypatch.setenv("PULSE_REFRESH_ON_START", "false")
        reset_settings()
        feed = await get_pulse_feed(store=kv_store, provider=provider, clock=clock)

        await feed.load()
        feed.on_state_change(PlayerState())
        await feed.wait_idle()

        provider.synthesize.assert_not_awaited()

    async def test_synthesis_expires_at_midnight(self, feed, clock):
        feed.on_state_change(PlayerState())
        await feed.request_refresh()
        assert feed.synthesis is not None

        clock.advance(hours=5)

        assert feed.synthesis is None


class TestListenersAndHistory:
    async def test_listener_called_on_state_and_synthesis(self, feed, first_state):
        calls = []
        feed.subscribe(lambda f: calls.append(f.synthesis))

        feed.on_state_change(first_state)
        await feed.request_refresh()

        assert calls == [None, make_synthesis()]

    async def test_unsubscribe(self, feed):
        calls = []
        unsubscribe = feed.subscribe(calls.append)
        unsubscribe()

        feed.on_state_change(PlayerState())
        assert calls == []

    async def test_recent_history(self, feed, clock):
        feed.on_state_change(PlayerState())
        await feed.request_refresh()
        clock.advance(days=1)
        await feed.request_refresh()

        entries = await feed.recent_history(7)
        assert [e.day for e in entries] == [TODAY.isoformat(), (TODAY + timedelta(days=1)).isoformat()]
        assert await feed.recent_history(1) == entries[-1:]


class TestContextSummary:
    async def test_empty(self, feed):
        assert feed.context_summary() == ""

    async def test_insights_and_synthesis(self, feed, first_state, provider):
        provider.synthesize.return_value = make_synthesis(
            burnout_risk=0.25, celebration="Eight days of Reading"
        )
        feed.on_state_change(first_state)
        await feed.request_refresh()

        lines = feed.context_summary().splitlines()

        assert lines[0] == "Pulse insights:"
        assert lines[1].startswith("- [critical] 1 streak at risk: Reading")
        assert "Pulse synthesis: momentum=steady, burnout=0.25" in lines
        assert "Celebrate: Eight days of Reading" in lines

    async def test_max_insights(self, feed, first_state):
        feed.on_state_change(first_state)
        lines = feed.context_summary(max_insights=1).splitlines()
        assert len(lines) == 2
        assert lines[0] == "Pulse insights:"


class TestSuggestionFor:
    async def test_no_synthesis(self, feed):
        assert feed.suggestion_for([InsightDomain.QUESTS]) is None

    async def test_keyword_match(self, feed, provider):
        provider.synthesize.return_value = make_synthesis(
            suggestion="Protect the Reading STREAK with a short session tonight."
        )
        feed.on_state_change(PlayerState())
        await feed.request_refresh()

        suggestion = "Protect the Reading STREAK with a short session tonight."
        assert feed.suggestion_for(["habits"]) == suggestion
        assert feed.suggestion_for([InsightDomain.FOCUS, InsightDomain.VOCAB]) == suggestion
        assert feed.suggestion_for(["goals"]) is None

    async def test_cross_domain_has_no_keywords(self, feed):
        feed.on_state_change(PlayerState())
        await feed.request_refresh()

        assert feed.suggestion_for(["cross-domain"]) is None
        # Default suggestion mentions a Hard quest
        assert feed.suggestion_for(["cross-domain", "quests"]) is not None

    async def test_stale_synthesis_is_ignored(self, feed, clock):
        feed.on_state_change(PlayerState())
        await feed.request_refresh()
        clock.advance(days=1)

        assert feed.suggestion_for(["quests"]) is None
