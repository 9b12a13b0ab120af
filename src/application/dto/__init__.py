"""Data transfer objects for the API layer."""

from src.application.dto.requests import RefreshRequest, UpdateStateRequest
from src.application.dto.responses import (
    ContextResponse,
    ErrorResponse,
    HealthResponse,
    HistoryEntryResponse,
    HistoryResponse,
    InsightListResponse,
    InsightResponse,
    ProviderHealthResponse,
    PulseEventResponse,
    RefreshResponse,
    StateUpdateResponse,
    SynthesisDataResponse,
    SynthesisResponse,
)

__all__ = [
    # Requests
    "UpdateStateRequest",
    "RefreshRequest",
    # Responses
    "InsightResponse",
    "InsightListResponse",
    "SynthesisDataResponse",
    "SynthesisResponse",
    "PulseEventResponse",
    "StateUpdateResponse",
    "RefreshResponse",
    "HistoryEntryResponse",
    "HistoryResponse",
    "ContextResponse",
    "ProviderHealthResponse",
    "HealthResponse",
    "ErrorResponse",
]
