"""
Nexus Pulse HTTP service.

Startup migrates the pulse database, opens the connection pool and loads
today's synthesis into the feed. Shutdown waits for any refresh still in
flight before closing the pool.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from src.api.middleware.error_handler import setup_exception_handlers
from src.api.routes import health_router, pulse_router
from src.application.services import get_pulse_feed
from src.config import Settings, configure_logging, get_logger, get_settings
from src.infrastructure.llm import get_llm_provider
from src.infrastructure.storage.sqlite import close_pool, get_pool
from src.infrastructure.storage.sqlite.migrations import run_migrations

logger = get_logger(__name__)


async def _open_database() -> None:
    results = await run_migrations()
    failed = [r for r in results if not r.success]
    if failed:
        logger.error("database_init_failed", version=failed[0].version, error=failed[0].error)
        raise RuntimeError(f"migration v{failed[0].version} failed: {failed[0].error}")

    await get_pool()
    logger.info("database_ready", migrations_applied=len(results))


async def _warm_llm(settings: Settings) -> None:
    if not settings.llm.warmup_on_start:
        return
    health = await get_llm_provider().check_health()
    logger.info("llm_provider_ready", healthy=health.available, error=health.error)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging()
    logger.info("application_starting", host=settings.api.host, port=settings.api.port)

    await _open_database()
    await _warm_llm(settings)

    feed = await get_pulse_feed()
    await feed.load()
    logger.info("application_started", has_synthesis=feed.synthesis is not None)

    try:
        yield
    finally:
        logger.info("application_stopping")
        await feed.wait_idle()
        await close_pool()
        logger.info("application_stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    docs = settings.api.debug

    app = FastAPI(
        title="Nexus Pulse API",
        description="Behavioral insights and AI synthesis for a productivity RPG",
        version=settings.app_version,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(pulse_router)

    @app.get("/health", include_in_schema=False)
    async def root_health() -> dict[str, str]:
        """Liveness probe for container orchestrators."""
        return {"status": "healthy", "version": get_settings().app_version}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    api = get_settings().api
    uvicorn.run("src.api.main:app", host=api.host, port=api.port, reload=api.debug)
