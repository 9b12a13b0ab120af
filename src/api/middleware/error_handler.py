"""
Error responses for the pulse API.

Every error leaves the service as an ErrorResponse body: a machine-readable
error_code, the message, a recovery hint and the request path. Model
failures during a refresh never reach here; the feed absorbs them.
"""

import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.application.dto.responses import ErrorResponse
from src.config import get_logger
from src.core.exceptions import (
    ConfigurationError,
    LLMError,
    PulseError,
    StateNotLoadedError,
    StorageError,
)

logger = get_logger(__name__)

# Checked in order; first isinstance match wins
_STATUS_BY_TYPE: tuple[tuple[type[Exception], int], ...] = (
    (StateNotLoadedError, status.HTTP_409_CONFLICT),
    (LLMError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ValueError, status.HTTP_400_BAD_REQUEST),
)

_HINTS = {
    "STATE_NOT_LOADED": "Push the player state with PUT /api/pulse/state first.",
    "LLM_UNAVAILABLE": "The LLM provider is offline. Local insights keep working.",
    "LLM_TIMEOUT": "The LLM request timed out. Retry later.",
    "LLM_RESPONSE_ERROR": "The model returned malformed output. Retry the refresh.",
    "MODEL_NOT_FOUND": "Pull the configured model with 'ollama pull'.",
    "CIRCUIT_BREAKER_OPEN": "Too many LLM failures. Wait for cooldown before retrying.",
    "CONFIGURATION_ERROR": "A setting is invalid. Check the LLM_ and STORAGE_ environment.",
    "VALIDATION_ERROR": "Check the request body against the API schema.",
    "DATABASE_ERROR": "A database operation failed. Check server logs.",
}

_FALLBACK_HINTS = {
    400: "Check the request parameters and body.",
    404: "The requested resource was not found.",
    409: "The request conflicts with the current state.",
    500: "An internal error occurred. Check server logs.",
    503: "The service is temporarily unavailable. Retry later.",
}

_HTTP_CODES = {400: "BAD_REQUEST", 404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}


def _hint(error_code: str, status_code: int) -> str:
    return _HINTS.get(error_code) or _FALLBACK_HINTS.get(status_code, "")


def _error_json(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    detail: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=_hint(error_code, status_code),
        detail=detail,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def build_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Log `exc` and turn it into an ErrorResponse."""
    status_code = next(
        (code for exc_type, code in _STATUS_BY_TYPE if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    error_code = exc.code if isinstance(exc, PulseError) else type(exc).__name__

    logger.error(
        "request_exception",
        request_id=getattr(request.state, "request_id", None),
        path=request.url.path,
        error_type=error_code,
        error=str(exc),
        traceback=traceback.format_exc() if status_code >= 500 else None,
    )
    return _error_json(request, status_code, error_code, str(exc))


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence for exceptions no handler claimed."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return build_error_response(request, e)


async def _on_pulse_error(request: Request, exc: PulseError) -> JSONResponse:
    return build_error_response(request, exc)


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return _error_json(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        detail="; ".join(problems),
    )


async def _on_http_error(request: Request, exc: HTTPException) -> JSONResponse:
    error_code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return _error_json(request, exc.status_code, error_code, exc.detail or "An error occurred")


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PulseError, _on_pulse_error)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(HTTPException, _on_http_error)
