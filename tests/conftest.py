"""Pytest configuration and shared fixtures."""

from collections.abc import Generator
from pathlib import Path

import pytest

from src.application.services import reset_services
from src.config import reset_settings
from src.core.entities.player_state import PlayerState
from tests.factories import FixedClock, InMemoryKeyValueStore


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def empty_state() -> PlayerState:
    return PlayerState(character_name="Rin", level=3)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point storage at a temp dir and reload settings for each test."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    reset_services()
    yield
    reset_services()
    reset_settings()
