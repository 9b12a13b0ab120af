"""
Nexus Pulse error types.

Each error carries a stable machine-readable `code` (used as the API
error_code) and a `details` dict for logs and error bodies.
"""

from typing import Any


class PulseError(Exception):
    """Root of every error the service raises on purpose."""

    default_code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code or type(self).__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ConfigurationError(PulseError, ValueError):
    """A setting names something the service cannot provide."""

    default_code = "CONFIGURATION_ERROR"


class StateNotLoadedError(PulseError):
    default_code = "STATE_NOT_LOADED"

    def __init__(self) -> None:
        super().__init__("No player state loaded")


# Storage


class StorageError(PulseError):
    pass


class DatabaseError(StorageError):
    default_code = "DATABASE_ERROR"

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            details={"operation": operation, "error": error},
        )


# Synthesis model


class LLMError(PulseError):
    """The synthesis model could not produce a usable reply."""


class LLMUnavailableError(LLMError):
    default_code = "LLM_UNAVAILABLE"

    def __init__(self, provider: str, reason: str | None = None):
        message = f"LLM provider unavailable: {provider}"
        if reason:
            message += f" - {reason}"
        super().__init__(message, details={"provider": provider, "reason": reason})


class LLMTimeoutError(LLMError):
    default_code = "LLM_TIMEOUT"

    def __init__(self, timeout: float, operation: str = "generation"):
        super().__init__(
            f"LLM {operation} timed out after {timeout} seconds",
            details={"timeout": timeout, "operation": operation},
        )


class LLMResponseError(LLMError):
    """Empty, non-JSON or schema-violating model output."""

    default_code = "LLM_RESPONSE_ERROR"

    def __init__(self, reason: str, response: str | None = None):
        super().__init__(
            f"Invalid LLM response: {reason}",
            details={"reason": reason, "response_preview": (response or "")[:200]},
        )


class ModelNotFoundError(LLMError):
    default_code = "MODEL_NOT_FOUND"

    def __init__(self, model: str, provider: str):
        super().__init__(
            f"Model '{model}' not found on {provider}",
            details={"model": model, "provider": provider},
        )


class CircuitBreakerOpenError(LLMError):
    default_code = "CIRCUIT_BREAKER_OPEN"

    def __init__(self, provider: str, cooldown_remaining: int):
        super().__init__(
            f"Circuit breaker open for {provider}, retry in {cooldown_remaining}s",
            details={"provider": provider, "cooldown_remaining": cooldown_remaining},
        )
