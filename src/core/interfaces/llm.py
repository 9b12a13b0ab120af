"""
Text-generation model contract used by the synthesis provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMResponse:
    text: str
    model: str
    done: bool = True
    done_reason: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class HealthStatus:
    """Result of probing a model server."""

    available: bool
    provider: str
    model: str | None = None
    error: str | None = None
    response_time_ms: float | None = None


class ILLMProvider(ABC):
    """A model server that can complete a prompt, optionally as JSON."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Complete `prompt`.

        Args:
            prompt: User prompt
            system_prompt: Instructions sent ahead of the prompt
            temperature: Sampling temperature; provider default when None
            max_tokens: Completion budget; provider default when None
            json_mode: Constrain the output to a JSON document
        """

    @abstractmethod
    async def check_health(self) -> HealthStatus:
        """Probe the server and confirm the configured model is present."""

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap, non-blocking availability guess."""
