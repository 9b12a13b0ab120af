"""Infrastructure layer implementations."""

from src.infrastructure import llm, storage

__all__ = ["storage", "llm"]
