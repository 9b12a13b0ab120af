"""
Player state aggregate consumed by the pulse engine.

Owned and mutated by the rest of the application; the engine only ever
sees frozen copies.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TaskDifficulty(str, Enum):
    """Quest difficulty tiers."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    EPIC = "Epic"


class VocabStatus(str, Enum):
    """Learning stage of a vocabulary word."""

    NEW = "new"
    LEARNING = "learning"
    REVIEWING = "reviewing"
    MASTERED = "mastered"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Task(_Frozen):
    """A quest on the player's board."""

    id: str
    title: str = ""
    completed: bool = False
    difficulty: TaskDifficulty = TaskDifficulty.MEDIUM
    category: str = "Other"
    completed_at: datetime | None = None


class Habit(_Frozen):
    """A recurring habit and its completion record."""

    id: str
    name: str
    streak: int = 0
    longest_streak: int = 0
    completed_dates: list[date] = Field(default_factory=list)


class ReflectionNote(_Frozen):
    """Evening reflection with a 1-5 energy rating."""

    date: date
    stars: int = Field(ge=1, le=5)
    note: str = ""


class VocabWord(_Frozen):
    """A word in the vocabulary deck."""

    id: str
    word: str
    status: VocabStatus = VocabStatus.NEW
    next_review_date: date
    total_reviews: int = 0
    correct_reviews: int = 0
    confidence_rating: int | None = None

    @property
    def accuracy(self) -> float:
        if self.total_reviews <= 0:
            return 0.0
        return self.correct_reviews / self.total_reviews


class ActivityEntry(_Frozen):
    """One line of the activity log."""

    id: str
    type: str
    text: str = ""
    timestamp: datetime


class GoalMilestone(_Frozen):
    id: str
    title: str
    completed: bool = False


class Goal(_Frozen):
    """A long-running goal with milestones."""

    id: str
    title: str
    target_date: date
    completed: bool = False
    milestones: list[GoalMilestone] = Field(default_factory=list)

    @property
    def milestone_progress(self) -> float:
        """Fraction of milestones completed (0 when there are none)."""
        if not self.milestones:
            return 0.0
        return sum(1 for m in self.milestones if m.completed) / len(self.milestones)


class PlayerState(_Frozen):
    """
    Read-only view of everything the pulse engine looks at.

    List order is not significant; rules sort by date themselves.
    """

    character_name: str = ""
    character_class: str | None = None
    level: int = 1
    xp: int = 0
    streak: int = 0
    hp: int = 100
    max_hp: int = 100
    today_energy_rating: int | None = None
    focus_sessions_total: int = 0
    focus_minutes_total: int = 0

    tasks: list[Task] = Field(default_factory=list)
    habits: list[Habit] = Field(default_factory=list)
    reflection_notes: list[ReflectionNote] = Field(default_factory=list)
    vocab_words: list[VocabWord] = Field(default_factory=list)
    activity_log: list[ActivityEntry] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)

    @property
    def completed_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.completed)
