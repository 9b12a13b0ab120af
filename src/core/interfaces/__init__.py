"""Ports implemented by the infrastructure layer."""

from src.core.interfaces.llm import HealthStatus, ILLMProvider, LLMResponse
from src.core.interfaces.storage import IKeyValueStore
from src.core.interfaces.synthesis import ISynthesisProvider

__all__ = [
    "HealthStatus",
    "IKeyValueStore",
    "ILLMProvider",
    "ISynthesisProvider",
    "LLMResponse",
]
