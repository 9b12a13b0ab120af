"""
Ollama provider for pulse synthesis.

Talks to a local Ollama server over its HTTP API: /api/generate for
completions and /api/tags to confirm the configured model is pulled.
"""

import time
from typing import Any

import httpx

from src.config import get_logger
from src.config.settings import LLMSettings
from src.core.exceptions import (
    LLMResponseError,
    LLMUnavailableError,
    ModelNotFoundError,
)
from src.core.interfaces.llm import HealthStatus, LLMResponse
from src.infrastructure.llm.base import BaseLLMProvider

logger = get_logger(__name__)

HEALTH_TIMEOUT = 10


class OllamaProvider(BaseLLMProvider):
    provider_name = "ollama"

    def __init__(self, settings: LLMSettings | None = None):
        super().__init__(settings)
        self.host = self.llm_settings.host.rstrip("/")
        self.model = self.llm_settings.model_name

    def _build_payload(
        self,
        prompt: str,
        system_prompt: str | None,
        temperature: float | None,
        max_tokens: int | None,
        json_mode: bool,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": (
                    self.llm_settings.temperature if temperature is None else temperature
                ),
                "num_predict": max_tokens or self.llm_settings.max_tokens,
            },
        }
        if system_prompt:
            payload["system"] = system_prompt
        if json_mode:
            payload["format"] = "json"
        return payload

    async def _post_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST to /api/generate, mapping transport errors to builtins for retry."""
        timeout = self.llm_settings.timeout
        try:
            async with httpx.AsyncClient(timeout=timeout + 5) as client:
                response = await client.post(
                    f"{self.host}/api/generate", json=payload, timeout=timeout
                )
        except httpx.TimeoutException as e:
            raise TimeoutError(str(e)) from e
        except httpx.TransportError as e:
            raise ConnectionError(str(e)) from e

        if response.status_code == 404:
            raise ModelNotFoundError(self.model, self.provider_name)
        if response.status_code != 200:
            raise LLMUnavailableError(
                self.provider_name,
                f"HTTP {response.status_code}: {response.text[:200]}",
            )
        return response.json()

    def _to_response(self, body: dict[str, Any]) -> LLMResponse:
        text = body.get("response", "")
        if not text.strip():
            raise LLMResponseError(
                f"Empty response (done_reason={body.get('done_reason')})", text
            )

        prompt_tokens = body.get("prompt_eval_count", 0)
        completion_tokens = body.get("eval_count", 0)
        return LLMResponse(
            text=text,
            model=self.model,
            done=body.get("done", True),
            done_reason=body.get("done_reason"),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        payload = self._build_payload(prompt, system_prompt, temperature, max_tokens, json_mode)

        async def attempt() -> LLMResponse:
            started = time.perf_counter()
            response = self._to_response(await self._post_generate(payload))
            logger.info(
                "ollama_generate",
                model=self.model,
                prompt_len=len(prompt),
                response_len=len(response.text),
                elapsed_ms=int((time.perf_counter() - started) * 1000),
            )
            return response

        return await self._with_resilience(attempt)

    async def check_health(self) -> HealthStatus:
        """Probe /api/tags and confirm the configured model is installed."""
        started = time.perf_counter()
        status = await self._probe_tags(started)
        self._update_health_cache(status)
        return status

    async def _probe_tags(self, started: float) -> HealthStatus:
        try:
            async with httpx.AsyncClient(timeout=HEALTH_TIMEOUT) as client:
                response = await client.get(f"{self.host}/api/tags")
        except httpx.ConnectError:
            return HealthStatus(
                available=False,
                provider=self.provider_name,
                error=f"Cannot connect to Ollama at {self.host}. Is 'ollama serve' running?",
            )
        except httpx.HTTPError as e:
            return HealthStatus(available=False, provider=self.provider_name, error=str(e))

        if response.status_code != 200:
            return HealthStatus(
                available=False,
                provider=self.provider_name,
                error=f"HTTP {response.status_code}",
            )

        installed = [m.get("name", "") for m in response.json().get("models", [])]
        # "llama3.1" matches "llama3.1:latest"
        if not any(self.model == name or self.model in name for name in installed):
            return HealthStatus(
                available=False,
                provider=self.provider_name,
                model=self.model,
                error=f"Model '{self.model}' not installed. Run: ollama pull {self.model}",
            )

        return HealthStatus(
            available=True,
            provider=self.provider_name,
            model=self.model,
            response_time_ms=(time.perf_counter() - started) * 1000,
        )


_ollama_provider: OllamaProvider | None = None


def get_ollama_provider() -> OllamaProvider:
    global _ollama_provider
    if _ollama_provider is None:
        _ollama_provider = OllamaProvider()
    return _ollama_provider
