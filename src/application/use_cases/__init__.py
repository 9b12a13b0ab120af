"""Application use cases."""

from src.application.use_cases.refresh_pulse_synthesis import (
    RefreshOutcome,
    RefreshPulseSynthesisUseCase,
)

__all__ = [
    "RefreshPulseSynthesisUseCase",
    "RefreshOutcome",
]
