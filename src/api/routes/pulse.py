"""
Pulse endpoints: state ingestion, insights, synthesis and history.
"""

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_feed
from src.application.dto.requests import RefreshRequest, UpdateStateRequest
from src.application.dto.responses import (
    ContextResponse,
    ErrorResponse,
    HistoryEntryResponse,
    HistoryResponse,
    InsightListResponse,
    InsightResponse,
    PulseEventResponse,
    RefreshResponse,
    StateUpdateResponse,
    SynthesisDataResponse,
    SynthesisResponse,
)
from src.application.pulse_feed import PulseFeed
from src.core.entities.insight import InsightDomain

router = APIRouter(prefix="/api/pulse", tags=["pulse"])


@router.put(
    "/state",
    response_model=StateUpdateResponse,
    responses={422: {"model": ErrorResponse}},
)
async def update_state(
    request: UpdateStateRequest,
    feed: PulseFeed = Depends(get_feed),
) -> StateUpdateResponse:
    """
    Replace the live player state.

    Detected trigger events schedule a background synthesis refresh.
    """
    events = feed.on_state_change(request.state)
    return StateUpdateResponse(
        events=[PulseEventResponse.from_entity(e) for e in events],
        insight_count=len(feed.insights),
    )


@router.get(
    "/insights",
    response_model=InsightListResponse,
    responses={409: {"model": ErrorResponse}},
)
async def list_insights(
    domain: list[InsightDomain] | None = Query(default=None),
    limit: int | None = Query(default=None, ge=0),
    feed: PulseFeed = Depends(get_feed),
) -> InsightListResponse:
    """Live insights for the current state, optionally filtered by domain."""
    feed.require_state()

    if domain:
        insights = feed.insights_for(domain, limit=limit)
    else:
        insights = feed.insights if limit is None else feed.insights[:limit]

    return InsightListResponse(
        insights=[InsightResponse.from_entity(i) for i in insights],
        total=len(insights),
        suggestion=feed.suggestion_for(domain) if domain else None,
    )


@router.get("/synthesis", response_model=SynthesisResponse)
async def get_synthesis(feed: PulseFeed = Depends(get_feed)) -> SynthesisResponse:
    """Today's synthesis, or null when none is available."""
    synthesis = feed.synthesis
    return SynthesisResponse(
        synthesis=SynthesisDataResponse.from_entity(synthesis) if synthesis else None,
        is_loading=feed.is_loading,
        last_refresh_day=feed.last_refresh_day,
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def refresh_synthesis(
    request: RefreshRequest | None = None,
    feed: PulseFeed = Depends(get_feed),
) -> RefreshResponse:
    """
    Manual refresh.

    Bypasses the cooldown. Dropped when a refresh is already running.
    """
    task = feed.request_refresh()
    if task is None:
        return RefreshResponse(scheduled=False)

    if request is not None and request.wait:
        outcome = await task
        return RefreshResponse(scheduled=True, outcome=outcome.value)

    return RefreshResponse(scheduled=True)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    limit: int = Query(default=7, ge=0, le=365),
    feed: PulseFeed = Depends(get_feed),
) -> HistoryResponse:
    """Most recent history entries, oldest first."""
    entries = await feed.recent_history(limit)
    return HistoryResponse(
        entries=[HistoryEntryResponse.from_entity(e) for e in entries],
        total=len(entries),
    )


@router.get("/context", response_model=ContextResponse)
async def get_context(feed: PulseFeed = Depends(get_feed)) -> ContextResponse:
    """Plain-text pulse digest for other prompts."""
    return ContextResponse(context=feed.context_summary())
