"""Compact, serializable projection of player state."""

from datetime import date

from pydantic import BaseModel, Field


class PlayerSummary(BaseModel):
    name: str
    level: int
    character_class: str | None = None
    streak: int
    hp: int
    max_hp: int


class TodayStats(BaseModel):
    quests_completed: int
    habits_completed: int
    total_habits: int
    energy: int | None = None


class ReflectionSummary(BaseModel):
    date: date
    stars: int
    note: str


class HabitStreakSummary(BaseModel):
    name: str
    streak: int
    longest_streak: int
    done_today: bool


class PendingQuests(BaseModel):
    easy: int = 0
    medium: int = 0
    hard: int = 0
    epic: int = 0


class VocabStats(BaseModel):
    total: int = 0
    mastered: int = 0
    due: int = 0
    avg_accuracy: int = 0  # percent


class Snapshot(BaseModel):
    """
    Point-in-time summary sent to the synthesis provider and kept in history.

    Pure derived state: contains no insights and nothing random, so two
    builds from the same state on the same day are equal.
    """

    day: date
    player: PlayerSummary
    today: TodayStats
    weekly_quest_counts: list[int] = Field(default_factory=list)
    energy_trend: list[int] = Field(default_factory=list)
    recent_reflections: list[ReflectionSummary] = Field(default_factory=list)
    habit_streaks: list[HabitStreakSummary] = Field(default_factory=list)
    pending_quests: PendingQuests = Field(default_factory=PendingQuests)
    vocab: VocabStats = Field(default_factory=VocabStats)
    focus_sessions: int = 0
    focus_minutes: int = 0
    active_goals: int = 0
