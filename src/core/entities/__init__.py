"""Core domain entities."""

from src.core.entities.insight import (
    SEVERITY_RANK,
    Insight,
    InsightDomain,
    InsightSeverity,
)
from src.core.entities.player_state import (
    ActivityEntry,
    Goal,
    GoalMilestone,
    Habit,
    PlayerState,
    ReflectionNote,
    Task,
    TaskDifficulty,
    VocabStatus,
    VocabWord,
)
from src.core.entities.pulse_event import PulseEvent, PulseEventType
from src.core.entities.snapshot import (
    HabitStreakSummary,
    PendingQuests,
    PlayerSummary,
    ReflectionSummary,
    Snapshot,
    TodayStats,
    VocabStats,
)
from src.core.entities.synthesis import (
    AISynthesis,
    CachedSynthesis,
    Momentum,
    PulseHistoryEntry,
)

__all__ = [
    # Insight entities
    "Insight",
    "InsightSeverity",
    "InsightDomain",
    "SEVERITY_RANK",
    # Player state entities
    "PlayerState",
    "Task",
    "TaskDifficulty",
    "Habit",
    "ReflectionNote",
    "VocabWord",
    "VocabStatus",
    "ActivityEntry",
    "Goal",
    "GoalMilestone",
    # Snapshot entities
    "Snapshot",
    "PlayerSummary",
    "TodayStats",
    "ReflectionSummary",
    "HabitStreakSummary",
    "PendingQuests",
    "VocabStats",
    # Synthesis entities
    "AISynthesis",
    "CachedSynthesis",
    "Momentum",
    "PulseHistoryEntry",
    # Events
    "PulseEvent",
    "PulseEventType",
]
