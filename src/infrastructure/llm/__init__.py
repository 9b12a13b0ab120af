"""Model providers and the synthesis adapter built on them."""

from src.infrastructure.llm.base import BaseLLMProvider, CircuitBreakerState
from src.infrastructure.llm.factory import check_llm_health, get_llm_provider
from src.infrastructure.llm.ollama import OllamaProvider, get_ollama_provider
from src.infrastructure.llm.synthesis import LLMSynthesisProvider

__all__ = [
    "BaseLLMProvider",
    "CircuitBreakerState",
    "LLMSynthesisProvider",
    "OllamaProvider",
    "check_llm_health",
    "get_llm_provider",
    "get_ollama_provider",
]
