"""
Core business logic services.

Layer-pure services that depend only on:
- src/core/entities/*
- src/core/interfaces/*
- src/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from src.core.services.pulse_history import PulseHistoryStore
from src.core.services.pulse_rules import PulseRuleEngine
from src.core.services.pulse_triggers import PulseTriggerDetector
from src.core.services.snapshot_builder import SnapshotBuilder
from src.core.services.synthesis_cache import SynthesisCache

__all__ = [
    # Rule engine
    "PulseRuleEngine",
    # Snapshot
    "SnapshotBuilder",
    # Synthesis cache
    "SynthesisCache",
    # History
    "PulseHistoryStore",
    # Event triggers
    "PulseTriggerDetector",
]
