"""Synthesis entities: provider output, cache record and history entry."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.entities.snapshot import Snapshot


class Momentum(str, Enum):
    """Overall direction reported by the synthesis provider."""

    RISING = "rising"
    STEADY = "steady"
    DECLINING = "declining"


class AISynthesis(BaseModel):
    """
    Structured narrative produced by the external synthesis provider.

    Accepts both snake_case and the camelCase keys LLMs tend to emit.
    Never constructed locally from heuristics.
    """

    model_config = ConfigDict(populate_by_name=True)

    top_insight: str = Field(alias="topInsight", min_length=1)
    burnout_risk: float = Field(alias="burnoutRisk")
    momentum: Momentum
    suggestion: str = Field(min_length=1)
    celebration_opportunity: str | None = Field(
        default=None, alias="celebrationOpportunity"
    )

    @field_validator("burnout_risk")
    @classmethod
    def clamp_burnout_risk(cls, v: float) -> float:
        return max(0.0, min(1.0, v))

    @field_validator("momentum", mode="before")
    @classmethod
    def normalize_momentum(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("celebration_opportunity", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CachedSynthesis(BaseModel):
    """Most recent synthesis plus the day and epoch-ms time it was stored."""

    data: AISynthesis
    day: str
    timestamp: int


class PulseHistoryEntry(BaseModel):
    """One synthesis and the snapshot it was produced from, per calendar day."""

    day: str
    synthesis: AISynthesis
    snapshot: Snapshot
