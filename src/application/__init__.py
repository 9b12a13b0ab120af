"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing the refresh use case over core services
3. Exposing the PulseFeed read model
4. Providing factory functions for dependency injection
"""

from src.application.pulse_feed import PulseFeed
from src.application.services import get_pulse_feed, reset_services
from src.application.use_cases import RefreshOutcome, RefreshPulseSynthesisUseCase

__all__ = [
    # Read model
    "PulseFeed",
    # Use cases
    "RefreshPulseSynthesisUseCase",
    "RefreshOutcome",
    # Factories
    "get_pulse_feed",
    "reset_services",
]
