"""Insight entity produced by the pulse rule engine."""

from enum import Enum

from pydantic import BaseModel


class InsightSeverity(str, Enum):
    """Severity level of an insight."""

    CRITICAL = "critical"
    WARNING = "warning"
    CELEBRATION = "celebration"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort rank, critical first."""
        return SEVERITY_RANK[self]


SEVERITY_RANK: dict[InsightSeverity, int] = {
    InsightSeverity.CRITICAL: 0,
    InsightSeverity.WARNING: 1,
    InsightSeverity.CELEBRATION: 2,
    InsightSeverity.INFO: 3,
}


class InsightDomain(str, Enum):
    """Area of player activity an insight is about."""

    ENERGY = "energy"
    QUESTS = "quests"
    HABITS = "habits"
    VOCAB = "vocab"
    FOCUS = "focus"
    STREAKS = "streaks"
    GOALS = "goals"
    CROSS_DOMAIN = "cross-domain"


class Insight(BaseModel):
    """
    A behavioral pattern detected from player state.

    Pure Pydantic model, not persisted. Recomputed on every evaluation
    by PulseRuleEngine. Icon, title, description and the action fields
    are presentation payload that the engine never interprets.
    """

    id: str
    icon: str
    title: str
    description: str
    severity: InsightSeverity
    domain: InsightDomain
    action_label: str | None = None
    action_target: str | None = None
