"""API route modules."""

from src.api.routes.health import router as health_router
from src.api.routes.pulse import router as pulse_router

__all__ = [
    "health_router",
    "pulse_router",
]
