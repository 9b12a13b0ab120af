"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.core.entities.insight import Insight
from src.core.entities.pulse_event import PulseEvent
from src.core.entities.synthesis import AISynthesis, PulseHistoryEntry


class InsightResponse(BaseModel):
    """One local insight."""

    id: str = Field(..., description="Stable insight ID")
    icon: str
    title: str
    description: str
    severity: str = Field(..., description="critical | warning | celebration | info")
    domain: str
    action_label: str | None = None
    action_target: str | None = None

    @classmethod
    def from_entity(cls, insight: Insight) -> "InsightResponse":
        return cls(
            id=insight.id,
            icon=insight.icon,
            title=insight.title,
            description=insight.description,
            severity=insight.severity.value,
            domain=insight.domain.value,
            action_label=insight.action_label,
            action_target=insight.action_target,
        )


class InsightListResponse(BaseModel):
    """Insights in severity order."""

    insights: list[InsightResponse] = Field(default_factory=list)
    total: int = 0
    suggestion: str | None = Field(
        default=None,
        description="Synthesis suggestion relevant to the requested domains",
    )


class SynthesisDataResponse(BaseModel):
    """Synthesis fields."""

    top_insight: str
    burnout_risk: float = Field(..., ge=0.0, le=1.0)
    momentum: str
    suggestion: str
    celebration_opportunity: str | None = None

    @classmethod
    def from_entity(cls, synthesis: AISynthesis) -> "SynthesisDataResponse":
        return cls(
            top_insight=synthesis.top_insight,
            burnout_risk=synthesis.burnout_risk,
            momentum=synthesis.momentum.value,
            suggestion=synthesis.suggestion,
            celebration_opportunity=synthesis.celebration_opportunity,
        )


class SynthesisResponse(BaseModel):
    """Today's synthesis, if any, and the loading flag."""

    synthesis: SynthesisDataResponse | None = None
    is_loading: bool = False
    last_refresh_day: str | None = None


class PulseEventResponse(BaseModel):
    """Detected trigger event."""

    type: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, event: PulseEvent) -> "PulseEventResponse":
        return cls(type=event.type.value, detail=event.detail)


class StateUpdateResponse(BaseModel):
    """Result of pushing a new player state."""

    events: list[PulseEventResponse] = Field(default_factory=list)
    insight_count: int = 0


class RefreshResponse(BaseModel):
    """Manual refresh result."""

    scheduled: bool = Field(..., description="False when a refresh was already running")
    outcome: str | None = Field(default=None, description="Set only when waited for")


class HistoryEntryResponse(BaseModel):
    """One day of pulse history."""

    day: str
    synthesis: SynthesisDataResponse
    snapshot: dict[str, Any]

    @classmethod
    def from_entity(cls, entry: PulseHistoryEntry) -> "HistoryEntryResponse":
        return cls(
            day=entry.day,
            synthesis=SynthesisDataResponse.from_entity(entry.synthesis),
            snapshot=entry.snapshot.model_dump(mode="json"),
        )


class HistoryResponse(BaseModel):
    """Most recent history entries, oldest first."""

    entries: list[HistoryEntryResponse] = Field(default_factory=list)
    total: int = 0


class ContextResponse(BaseModel):
    """Plain-text pulse digest."""

    context: str = ""


class ProviderHealthResponse(BaseModel):
    """Provider health status."""

    name: str
    available: bool
    model: str | None = None
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    llm: ProviderHealthResponse | None = None
    database: ProviderHealthResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. STATE_NOT_LOADED)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
