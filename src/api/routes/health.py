"""
Health endpoints.

The LLM check reports "degraded" rather than failing: the pulse keeps
serving local insights without a model.
"""

import time

import aiosqlite
from fastapi import APIRouter, Depends

from src.api.dependencies import get_llm
from src.application.dto.responses import HealthResponse, ProviderHealthResponse
from src.config import get_settings
from src.core.interfaces import ILLMProvider
from src.infrastructure.storage.sqlite import get_pool

router = APIRouter(prefix="/api/health", tags=["health"])

_started_at = time.monotonic()


def _report(status: str, **providers: ProviderHealthResponse) -> HealthResponse:
    return HealthResponse(
        status=status,
        version=get_settings().app_version,
        uptime_seconds=time.monotonic() - _started_at,
        **providers,
    )


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return _report("healthy")


@router.get("/llm", response_model=HealthResponse)
async def llm_health(llm: ILLMProvider = Depends(get_llm)) -> HealthResponse:
    started = time.perf_counter()
    result = await llm.check_health()
    llm_status = ProviderHealthResponse(
        name=type(llm).__name__,
        available=result.available,
        model=result.model,
        latency_ms=(time.perf_counter() - started) * 1000,
        error=result.error,
    )
    return _report("healthy" if llm_status.available else "degraded", llm=llm_status)


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """Round-trip a trivial query through the pool."""
    started = time.perf_counter()
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
    except (aiosqlite.Error, OSError) as e:
        db_status = ProviderHealthResponse(name="sqlite", available=False, error=str(e))
        return _report("unhealthy", database=db_status)

    db_status = ProviderHealthResponse(
        name="sqlite",
        available=True,
        latency_ms=(time.perf_counter() - started) * 1000,
    )
    return _report("healthy", database=db_status)
