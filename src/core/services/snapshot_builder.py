"""
Snapshot builder.

Projects the player state into the compact Snapshot sent to the
synthesis provider and stored in pulse history.
"""

from src.core.clock import Clock
from src.core.entities.player_state import PlayerState, TaskDifficulty, VocabStatus
from src.core.entities.snapshot import (
    HabitStreakSummary,
    PendingQuests,
    PlayerSummary,
    ReflectionSummary,
    Snapshot,
    TodayStats,
    VocabStats,
)
from src.core.services.pulse_metrics import completed_on, daily_completions, energy_ratings

RECENT_REFLECTIONS = 5
REFLECTION_NOTE_CHARS = 80
MAX_HABITS = 8
WEEK_DAYS = 7


class SnapshotBuilder:
    """Builds snapshots. Reads nothing but the state and today's date."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or Clock()

    def build(self, state: PlayerState) -> Snapshot:
        now = self._clock.now()
        today = now.date()
        tz = now.tzinfo

        reflections = sorted(state.reflection_notes, key=lambda r: r.date)[-RECENT_REFLECTIONS:]

        pending = PendingQuests()
        for task in state.tasks:
            if task.completed:
                continue
            if task.difficulty == TaskDifficulty.EASY:
                pending.easy += 1
            elif task.difficulty == TaskDifficulty.MEDIUM:
                pending.medium += 1
            elif task.difficulty == TaskDifficulty.HARD:
                pending.hard += 1
            elif task.difficulty == TaskDifficulty.EPIC:
                pending.epic += 1

        words = state.vocab_words
        avg_accuracy = (
            round(sum(w.accuracy for w in words) / len(words) * 100) if words else 0
        )

        return Snapshot(
            day=today,
            player=PlayerSummary(
                name=state.character_name or "Adventurer",
                level=state.level,
                character_class=state.character_class,
                streak=state.streak,
                hp=state.hp,
                max_hp=state.max_hp,
            ),
            today=TodayStats(
                quests_completed=completed_on(state.tasks, today, tz),
                habits_completed=sum(1 for h in state.habits if today in h.completed_dates),
                total_habits=len(state.habits),
                energy=state.today_energy_rating,
            ),
            weekly_quest_counts=daily_completions(state.tasks, today, WEEK_DAYS, tz),
            energy_trend=energy_ratings(state.reflection_notes, today, WEEK_DAYS),
            recent_reflections=[
                ReflectionSummary(
                    date=r.date,
                    stars=r.stars,
                    note=r.note[:REFLECTION_NOTE_CHARS],
                )
                for r in reflections
            ],
            habit_streaks=[
                HabitStreakSummary(
                    name=h.name,
                    streak=h.streak,
                    longest_streak=h.longest_streak,
                    done_today=today in h.completed_dates,
                )
                for h in state.habits[:MAX_HABITS]
            ],
            pending_quests=pending,
            vocab=VocabStats(
                total=len(words),
                mastered=sum(1 for w in words if w.status == VocabStatus.MASTERED),
                due=sum(1 for w in words if w.next_review_date <= today),
                avg_accuracy=avg_accuracy,
            ),
            focus_sessions=state.focus_sessions_total,
            focus_minutes=state.focus_minutes_total,
            active_goals=sum(1 for g in state.goals if not g.completed),
        )
