"""
Shared resilience for synthesis model providers.

Every model call is wrapped by _with_resilience: transport problems are
retried with exponential backoff, and repeated transport failures open a
circuit breaker that rejects calls until its cooldown has passed.
"""

import time
from abc import ABC
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_logger, get_settings
from src.config.settings import LLMSettings
from src.core.exceptions import (
    CircuitBreakerOpenError,
    LLMTimeoutError,
    LLMUnavailableError,
)
from src.core.interfaces.llm import HealthStatus, ILLMProvider

logger = get_logger(__name__)

T = TypeVar("T")

# Transport-level failures; everything else is a bad reply
_TRANSIENT = (TimeoutError, ConnectionError)

HEALTH_CACHE_TTL = 30.0


@dataclass
class CircuitBreakerState:
    """Consecutive-failure counter that blocks calls for a cooldown."""

    failures: int = 0
    last_failure_time: float = 0.0
    is_open: bool = False
    cooldown_seconds: int = 60
    failure_threshold: int = 3

    def _since_last_failure(self) -> float:
        return time.monotonic() - self.last_failure_time

    @property
    def cooldown_remaining(self) -> int:
        if not self.is_open:
            return 0
        return max(0, int(self.cooldown_seconds - self._since_last_failure()))

    def check(self, provider: str = "llm") -> None:
        """Raise CircuitBreakerOpenError while open and cooling down."""
        if not self.is_open:
            return
        if self._since_last_failure() < self.cooldown_seconds:
            raise CircuitBreakerOpenError(provider, self.cooldown_remaining)
        logger.info("circuit_breaker_half_open", provider=provider)

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = time.monotonic()
        if not self.is_open and self.failures >= self.failure_threshold:
            self.is_open = True
            logger.warning(
                "circuit_breaker_opened",
                failures=self.failures,
                cooldown=self.cooldown_seconds,
            )

    def record_success(self) -> None:
        was_open = self.is_open
        self.failures = 0
        self.is_open = False
        if was_open:
            logger.info("circuit_breaker_closed")


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.warning(
        "llm_retry",
        attempt=retry_state.attempt_number,
        error=str(outcome.exception()) if outcome else None,
    )


class BaseLLMProvider(ILLMProvider, ABC):
    """
    Provider base with retries, a circuit breaker and a cached health flag.

    Subclasses raise TimeoutError or ConnectionError for transport problems
    and domain exceptions for replies they cannot use.
    """

    provider_name = "llm"

    def __init__(self, settings: LLMSettings | None = None) -> None:
        self.llm_settings = settings or get_settings().llm
        self.circuit_breaker = CircuitBreakerState(
            failure_threshold=self.llm_settings.failure_threshold,
            cooldown_seconds=self.llm_settings.cooldown_seconds,
        )
        self._last_health: HealthStatus | None = None
        self._last_health_at = 0.0

    def _retrying(self) -> AsyncRetrying:
        cfg = self.llm_settings
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, cfg.max_retries)),
            wait=wait_exponential(
                multiplier=cfg.retry_delay,
                min=cfg.retry_delay,
                max=cfg.retry_delay * cfg.retry_multiplier**3,
            ),
            retry=retry_if_exception_type(_TRANSIENT),
            before_sleep=_log_retry,
            reraise=True,
        )

    async def _with_resilience(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run `operation` behind the circuit breaker with retries.

        Raises:
            CircuitBreakerOpenError: The breaker is open
            LLMTimeoutError: Every attempt timed out
            LLMUnavailableError: Every attempt failed to connect
        """
        self.circuit_breaker.check(self.provider_name)

        try:
            async for attempt in self._retrying():
                with attempt:
                    result = await operation(*args, **kwargs)
        except TimeoutError as e:
            self.circuit_breaker.record_failure()
            raise LLMTimeoutError(self.llm_settings.timeout) from e
        except (ConnectionError, OSError) as e:
            self.circuit_breaker.record_failure()
            raise LLMUnavailableError(self.provider_name, str(e)) from e
        except Exception as e:
            logger.warning("llm_error", error=str(e), error_type=type(e).__name__)
            raise

        self.circuit_breaker.record_success()
        return result

    def is_available(self) -> bool:
        """Non-blocking guess from the breaker and the last health check."""
        if self.circuit_breaker.is_open:
            return False
        fresh = time.monotonic() - self._last_health_at < HEALTH_CACHE_TTL
        if self._last_health is not None and fresh:
            return self._last_health.available
        return True

    def _update_health_cache(self, status: HealthStatus) -> None:
        self._last_health = status
        self._last_health_at = time.monotonic()
