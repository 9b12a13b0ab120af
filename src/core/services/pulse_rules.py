"""
Pulse Rule Engine.

Evaluates player state against a fixed bank of independent heuristics
and returns ranked insights. Pure and cheap: no I/O, safe to call on
every state change.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from src.config import get_logger
from src.core.clock import Clock
from src.core.entities.insight import Insight, InsightDomain, InsightSeverity
from src.core.entities.player_state import PlayerState, TaskDifficulty
from src.core.entities.synthesis import Momentum
from src.core.services.pulse_metrics import (
    align,
    completed_on,
    energy_ratings,
    habit_completion_rate,
    local_date,
    trend,
    whole_days_between,
)

logger = get_logger(__name__)

DEFAULT_STREAK_MILESTONES = (7, 14, 30, 50, 100)

ENERGY_WINDOW_DAYS = 5
ENERGY_MIN_RATINGS = 3
QUEST_SPREE_MIN = 5
HABIT_STREAK_AT_RISK = 3
HABIT_STREAK_CRITICAL = 7
HABIT_DECLINE_RATE = 0.3
VOCAB_MIN_REVIEWS = 3
VOCAB_MIN_REVIEWED_WORDS = 5
VOCAB_OVERCONFIDENT_MIN = 2
VOCAB_BACKLOG_INFO = 10
VOCAB_BACKLOG_WARNING = 20
FOCUS_ABSENT_DAYS = 3
HP_CRITICAL_RATIO = 0.25
HARD_PENDING_MIN = 3
EASY_RECENT_MIN = 5
EASY_RECENT_DAYS = 3
GOAL_DEADLINE_DAYS = 3
GOAL_PROGRESS_MIN = 0.5


@dataclass(frozen=True)
class _Context:
    today: date
    now: datetime


Rule = Callable[[PlayerState, _Context], "Insight | None"]


def _name_list(names: list[str], shown: int = 3) -> str:
    text = ", ".join(names[:shown])
    if len(names) > shown:
        text += f" and {len(names) - shown} more"
    return text


class PulseRuleEngine:
    """
    Runs every rule against a state and ranks the results.

    Each rule returns at most one insight. A rule that raises is logged
    and counts as "no insight"; the remaining rules still run.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        streak_milestones: Iterable[int] = DEFAULT_STREAK_MILESTONES,
    ) -> None:
        self._clock = clock or Clock()
        self._milestones = frozenset(streak_milestones)
        self._rules: list[tuple[str, Rule]] = [
            ("energy_trend", self._check_energy_trend),
            ("quest_stall", self._check_quest_stall),
            ("quest_spree", self._check_quest_spree),
            ("habit_streak_risk", self._check_habit_streak_risk),
            ("habit_decline", self._check_habit_decline),
            ("vocab_overconfidence", self._check_vocab_overconfidence),
            ("vocab_backlog", self._check_vocab_backlog),
            ("focus_absence", self._check_focus_absence),
            ("streak_milestone", self._check_streak_milestone),
            ("hp_critical", self._check_hp_critical),
            ("hard_avoidance", self._check_hard_avoidance),
            ("goal_deadline", self._check_goal_deadline),
        ]

    def evaluate(self, state: PlayerState) -> list[Insight]:
        """
        Evaluate all rules.

        Args:
            state: Frozen player state.

        Returns:
            Insights deduplicated by id and sorted critical-first. Ties
            keep rule order.
        """
        now = self._clock.now()
        ctx = _Context(today=now.date(), now=now)

        insights: list[Insight] = []
        seen: set[str] = set()
        for name, rule in self._rules:
            try:
                insight = rule(state, ctx)
            except Exception:
                logger.warning("pulse_rule_failed", rule=name, exc_info=True)
                continue
            if insight is None or insight.id in seen:
                continue
            seen.add(insight.id)
            insights.append(insight)

        insights.sort(key=lambda i: i.severity.rank)
        logger.debug("pulse_rules_evaluated", total=len(insights))
        return insights

    # Energy

    def _check_energy_trend(self, state: PlayerState, ctx: _Context) -> Insight | None:
        ratings = energy_ratings(state.reflection_notes, ctx.today, ENERGY_WINDOW_DAYS)
        if len(ratings) < ENERGY_MIN_RATINGS:
            return None

        direction = trend(ratings)
        if direction == Momentum.DECLINING:
            return Insight(
                id="energy-declining",
                icon="🔋",
                title="Energy dipping",
                description=(
                    f"Your energy ratings have been declining over the last "
                    f"{len(ratings)} check-ins. Consider lighter tasks or a rest day."
                ),
                severity=InsightSeverity.WARNING,
                domain=InsightDomain.ENERGY,
                action_label="Check in",
                action_target="/reflection",
            )
        if direction == Momentum.RISING and ratings[-1] >= 4:
            return Insight(
                id="energy-rising",
                icon="⚡",
                title="Energy surge",
                description="Your energy is trending up. Good moment for a Hard or Epic quest.",
                severity=InsightSeverity.CELEBRATION,
                domain=InsightDomain.ENERGY,
                action_label="Go hard",
                action_target="/quests",
            )
        return None

    # Quests

    def _check_quest_stall(self, state: PlayerState, ctx: _Context) -> Insight | None:
        tz = ctx.now.tzinfo
        today = completed_on(state.tasks, ctx.today, tz)
        yesterday = completed_on(state.tasks, ctx.today - timedelta(days=1), tz)
        two_days_ago = completed_on(state.tasks, ctx.today - timedelta(days=2), tz)
        if today or yesterday or not two_days_ago:
            return None
        return Insight(
            id="quest-stall",
            icon="📉",
            title="Quest momentum stalling",
            description="No quests completed in 2 days. One small win can restart your momentum.",
            severity=InsightSeverity.WARNING,
            domain=InsightDomain.QUESTS,
            action_label="Quick quest",
            action_target="/quests",
        )

    def _check_quest_spree(self, state: PlayerState, ctx: _Context) -> Insight | None:
        count = completed_on(state.tasks, ctx.today, ctx.now.tzinfo)
        if count < QUEST_SPREE_MIN:
            return None
        return Insight(
            id="quest-spree",
            icon="🔥",
            title="On a quest spree!",
            description=f"{count} quests completed today. Absolutely crushing it.",
            severity=InsightSeverity.CELEBRATION,
            domain=InsightDomain.QUESTS,
        )

    def _check_hard_avoidance(self, state: PlayerState, ctx: _Context) -> Insight | None:
        hard_pending = sum(
            1
            for t in state.tasks
            if not t.completed and t.difficulty in (TaskDifficulty.HARD, TaskDifficulty.EPIC)
        )
        since = ctx.today - timedelta(days=EASY_RECENT_DAYS)
        easy_recent = sum(
            1
            for t in state.tasks
            if t.completed
            and t.difficulty == TaskDifficulty.EASY
            and t.completed_at is not None
            and local_date(t.completed_at, ctx.now.tzinfo) >= since
        )
        if hard_pending < HARD_PENDING_MIN or easy_recent < EASY_RECENT_MIN:
            return None
        return Insight(
            id="hard-avoidance",
            icon="🛡️",
            title="Hard quest avoidance?",
            description=(
                f"{hard_pending} Hard/Epic quests are waiting while you've been "
                f"clearing Easy ones. Try tackling one today."
            ),
            severity=InsightSeverity.INFO,
            domain=InsightDomain.QUESTS,
            action_label="View quests",
            action_target="/quests",
        )

    def _check_hp_critical(self, state: PlayerState, ctx: _Context) -> Insight | None:
        if state.max_hp <= 0 or state.hp <= 0:
            return None
        if state.hp >= state.max_hp * HP_CRITICAL_RATIO:
            return None
        return Insight(
            id="hp-critical",
            icon="❤️",
            title="HP critically low",
            description=(
                f"Only {state.hp}/{state.max_hp} HP remaining. Use a health potion "
                f"or complete easy quests to recover."
            ),
            severity=InsightSeverity.CRITICAL,
            domain=InsightDomain.QUESTS,
            action_label="Inventory",
            action_target="/inventory",
        )

    # Habits

    def _check_habit_streak_risk(self, state: PlayerState, ctx: _Context) -> Insight | None:
        at_risk = [
            h
            for h in state.habits
            if h.streak >= HABIT_STREAK_AT_RISK and ctx.today not in h.completed_dates
        ]
        if not at_risk:
            return None

        critical = any(h.streak >= HABIT_STREAK_CRITICAL for h in at_risk)
        plural = "s" if len(at_risk) > 1 else ""
        return Insight(
            id="habit-streak-risk",
            icon="🧊",
            title=f"{len(at_risk)} streak{plural} at risk",
            description=(
                f"{_name_list([h.name for h in at_risk])}: complete before midnight "
                f"to keep your streak{plural} alive."
            ),
            severity=InsightSeverity.CRITICAL if critical else InsightSeverity.WARNING,
            domain=InsightDomain.HABITS,
            action_label="Do habits",
            action_target="/habits",
        )

    def _check_habit_decline(self, state: PlayerState, ctx: _Context) -> Insight | None:
        if not state.habits:
            return None
        recent = habit_completion_rate(state.habits, ctx.today, 7)
        longer = habit_completion_rate(state.habits, ctx.today, 14)
        if recent >= HABIT_DECLINE_RATE or recent >= longer:
            return None
        return Insight(
            id="habit-decline",
            icon="📊",
            title="Habit completion dropping",
            description=(
                f"Only {round(recent * 100)}% habit completion this week. "
                f"Too many habits? Consider focusing on your top 3."
            ),
            severity=InsightSeverity.WARNING,
            domain=InsightDomain.HABITS,
            action_label="Review habits",
            action_target="/habits",
        )

    # Vocabulary

    def _check_vocab_overconfidence(self, state: PlayerState, ctx: _Context) -> Insight | None:
        reviewed = [w for w in state.vocab_words if w.total_reviews >= VOCAB_MIN_REVIEWS]
        if len(reviewed) < VOCAB_MIN_REVIEWED_WORDS:
            return None
        overconfident = [
            w for w in reviewed if (w.confidence_rating or 0) >= 4 and w.accuracy < 0.6
        ]
        if len(overconfident) < VOCAB_OVERCONFIDENT_MIN:
            return None
        return Insight(
            id="vocab-overconfidence",
            icon="🎯",
            title="Vocab overconfidence detected",
            description=(
                f"{len(overconfident)} words you feel confident about have under 60% "
                f"accuracy. Quiz practice can close this gap."
            ),
            severity=InsightSeverity.WARNING,
            domain=InsightDomain.VOCAB,
            action_label="Take quiz",
            action_target="/wordforge",
        )

    def _check_vocab_backlog(self, state: PlayerState, ctx: _Context) -> Insight | None:
        due = sum(1 for w in state.vocab_words if w.next_review_date <= ctx.today)
        if due < VOCAB_BACKLOG_INFO:
            return None
        return Insight(
            id="vocab-pileup",
            icon="📚",
            title=f"{due} vocab words due",
            description="Your review queue is building up. A quick 5-minute session can chip away at it.",
            severity=(
                InsightSeverity.WARNING if due >= VOCAB_BACKLOG_WARNING else InsightSeverity.INFO
            ),
            domain=InsightDomain.VOCAB,
            action_label="Review words",
            action_target="/wordforge",
        )

    # Focus and streaks

    def _check_focus_absence(self, state: PlayerState, ctx: _Context) -> Insight | None:
        if state.focus_sessions_total <= 0:
            return None
        focus_times = [
            align(a.timestamp, ctx.now)
            for a in state.activity_log
            if "focus" in a.text.lower() or "focus" in a.type.lower()
        ]
        if not focus_times:
            return None

        days = whole_days_between(max(focus_times), ctx.now)
        if days < FOCUS_ABSENT_DAYS:
            return None
        return Insight(
            id="focus-absent",
            icon="⏱️",
            title=f"No focus sessions in {days} days",
            description=(
                "Focus sessions tend to go with higher quest completion. "
                "Consider a short session today."
            ),
            severity=InsightSeverity.INFO,
            domain=InsightDomain.FOCUS,
            action_label="Start focus",
            action_target="/focus",
        )

    def _check_streak_milestone(self, state: PlayerState, ctx: _Context) -> Insight | None:
        if state.streak not in self._milestones:
            return None
        return Insight(
            id=f"streak-milestone-{state.streak}",
            icon="🏆",
            title=f"{state.streak}-day streak milestone!",
            description=f"You've kept a {state.streak}-day streak. That's real consistency.",
            severity=InsightSeverity.CELEBRATION,
            domain=InsightDomain.STREAKS,
        )

    # Goals

    def _check_goal_deadline(self, state: PlayerState, ctx: _Context) -> Insight | None:
        # Goals without milestones carry no progress signal
        at_risk = sorted(
            (
                g
                for g in state.goals
                if not g.completed
                and g.milestones
                and (g.target_date - ctx.today).days <= GOAL_DEADLINE_DAYS
                and g.milestone_progress < GOAL_PROGRESS_MIN
            ),
            key=lambda g: g.target_date,
        )
        if not at_risk:
            return None
        plural = "s" if len(at_risk) > 1 else ""
        return Insight(
            id="goal-deadline-risk",
            icon="🎯",
            title=f"{len(at_risk)} goal{plural} near deadline",
            description=(
                f"{_name_list([g.title for g in at_risk])}: less than half of the "
                f"milestones are done and the target date is close."
            ),
            severity=InsightSeverity.WARNING,
            domain=InsightDomain.GOALS,
            action_label="Review goals",
            action_target="/goals",
        )
