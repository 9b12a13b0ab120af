"""API tests for the pulse endpoints."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import get_feed
from src.api.main import app
from src.application.services import get_pulse_feed
from src.core.entities.player_state import PlayerState
from src.core.interfaces.synthesis import ISynthesisProvider
from tests.factories import completed_task, habit, make_synthesis, pending_task


@pytest.fixture
def provider() -> AsyncMock:
    mock = AsyncMock(spec=ISynthesisProvider)
    mock.synthesize.return_value = make_synthesis(celebration="Three quests in one sitting")
    return mock


@pytest.fixture
async def feed(kv_store, provider, clock):
    return await get_pulse_feed(store=kv_store, provider=provider, clock=clock)


@pytest.fixture
async def client(feed):
    app.dependency_overrides[get_feed] = lambda: feed
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await feed.wait_idle()
    app.dependency_overrides.clear()


def _state(**overrides: Any) -> dict[str, Any]:
    base = PlayerState(
        character_name="Rin",
        hp=15,
        tasks=[pending_task(f"t{i}") for i in range(3)],
        habits=[habit("Reading", streak=8)],
    )
    return {"state": base.model_copy(update=overrides).model_dump(mode="json")}


class TestStateEndpoint:
    async def test_first_push(self, client):
        response = await client.put("/api/pulse/state", json=_state())

        assert response.status_code == 200
        data = response.json()
        assert data["events"] == []
        assert data["insight_count"] == 2
        assert "X-Request-ID" in response.headers

    async def test_batch_complete_triggers_refresh(self, client, feed, provider):
        await client.put("/api/pulse/state", json=_state())

        response = await client.put(
            "/api/pulse/state",
            json=_state(tasks=[completed_task(f"t{i}") for i in range(3)]),
        )
        await feed.wait_idle()

        assert response.status_code == 200
        assert response.json()["events"] == [
            {"type": "batch_complete", "detail": {"completed_delta": 3}}
        ]
        provider.synthesize.assert_awaited_once()

    async def test_invalid_state_rejected(self, client):
        body = _state()
        body["state"]["reflection_notes"] = [{"date": "2024-01-02", "stars": 9}]

        response = await client.put("/api/pulse/state", json=body)

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestInsightsEndpoint:
    async def test_requires_state(self, client):
        response = await client.get("/api/pulse/insights")

        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "STATE_NOT_LOADED"
        assert "PUT /api/pulse/state" in data["hint"]

    async def test_ranked_insights(self, client):
        await client.put("/api/pulse/state", json=_state())

        response = await client.get("/api/pulse/insights")

        data = response.json()
        assert data["total"] == 2
        assert [i["id"] for i in data["insights"]] == ["habit-streak-risk", "hp-critical"]
        assert data["insights"][0]["severity"] == "critical"
        assert data["insights"][0]["action_target"] == "/habits"

    async def test_domain_filter_and_limit(self, client):
        await client.put("/api/pulse/state", json=_state())

        by_domain = await client.get("/api/pulse/insights", params={"domain": "quests"})
        limited = await client.get("/api/pulse/insights", params={"limit": 1})

        assert [i["id"] for i in by_domain.json()["insights"]] == ["hp-critical"]
        assert limited.json()["total"] == 1

    async def test_domain_suggestion(self, client):
        await client.put("/api/pulse/state", json=_state())
        before = (await client.get("/api/pulse/insights", params={"domain": "quests"})).json()
        await client.post("/api/pulse/refresh", json={"wait": True})

        quests = await client.get("/api/pulse/insights", params={"domain": "quests"})
        goals = await client.get("/api/pulse/insights", params={"domain": "goals"})
        unfiltered = await client.get("/api/pulse/insights")

        assert before["suggestion"] is None
        assert quests.json()["suggestion"] == "Finish one Hard quest before noon."
        assert goals.json()["suggestion"] is None
        assert unfiltered.json()["suggestion"] is None

    async def test_unknown_domain(self, client):
        await client.put("/api/pulse/state", json=_state())

        response = await client.get("/api/pulse/insights", params={"domain": "cooking"})

        assert response.status_code == 422


class TestSynthesisEndpoints:
    async def test_no_synthesis_yet(self, client):
        response = await client.get("/api/pulse/synthesis")

        assert response.status_code == 200
        assert response.json() == {
            "synthesis": None,
            "is_loading": False,
            "last_refresh_day": None,
        }

    async def test_refresh_and_wait(self, client):
        await client.put("/api/pulse/state", json=_state())

        response = await client.post("/api/pulse/refresh", json={"wait": True})

        assert response.status_code == 202
        assert response.json() == {"scheduled": True, "outcome": "refreshed"}

        synthesis = (await client.get("/api/pulse/synthesis")).json()
        assert synthesis["last_refresh_day"] == "2024-01-02"
        assert synthesis["synthesis"]["momentum"] == "steady"
        assert synthesis["synthesis"]["celebration_opportunity"] == "Three quests in one sitting"

    async def test_refresh_without_state(self, client):
        response = await client.post("/api/pulse/refresh", json={"wait": True})
        assert response.json()["outcome"] == "skipped_no_state"

    async def test_refresh_in_background(self, client, feed, provider):
        await client.put("/api/pulse/state", json=_state())

        response = await client.post("/api/pulse/refresh")
        await feed.wait_idle()

        assert response.json() == {"scheduled": True, "outcome": None}
        provider.synthesize.assert_awaited_once()

    async def test_refresh_dropped_while_running(self, client, feed, provider):
        gate = asyncio.Event()

        async def slow(snapshot, history):
            await gate.wait()
            return make_synthesis()

        provider.synthesize.side_effect = slow
        await client.put("/api/pulse/state", json=_state())

        first = await client.post("/api/pulse/refresh")
        while not feed.is_loading:
            await asyncio.sleep(0)

        loading = (await client.get("/api/pulse/synthesis")).json()["is_loading"]
        second = await client.post("/api/pulse/refresh")
        gate.set()
        await feed.wait_idle()

        assert first.json()["scheduled"] is True
        assert loading is True
        assert second.json()["scheduled"] is False
        provider.synthesize.assert_awaited_once()

    async def test_provider_failure_is_not_an_http_error(self, client, provider):
        provider.synthesize.side_effect = RuntimeError("model crashed")
        await client.put("/api/pulse/state", json=_state())

        response = await client.post("/api/pulse/refresh", json={"wait": True})

        assert response.status_code == 202
        assert response.json()["outcome"] == "failed"
        assert (await client.get("/api/pulse/synthesis")).json()["synthesis"] is None


class TestHistoryAndContext:
    async def test_history(self, client):
        await client.put("/api/pulse/state", json=_state())
        await client.post("/api/pulse/refresh", json={"wait": True})

        response = await client.get("/api/pulse/history", params={"limit": 7})

        data = response.json()
        assert data["total"] == 1
        entry = data["entries"][0]
        assert entry["day"] == "2024-01-02"
        assert entry["snapshot"]["player"]["name"] == "Rin"

    async def test_history_limit_validated(self, client):
        response = await client.get("/api/pulse/history", params={"limit": -1})
        assert response.status_code == 422

    async def test_context(self, client):
        assert (await client.get("/api/pulse/context")).json() == {"context": ""}

        await client.put("/api/pulse/state", json=_state())
        await client.post("/api/pulse/refresh", json={"wait": True})

        context = (await client.get("/api/pulse/context")).json()["context"]
        assert context.startswith("Pulse insights:\n- [critical]")
        assert "Suggestion: Finish one Hard quest before noon." in context
