"""
Key-value port for pulse records.

Values are JSON text; the store never inspects them.
"""

from abc import ABC, abstractmethod


class IKeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Stored text for `key`, or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def set_many(self, values: dict[str, str]) -> None:
        """Write all of `values` or none of them."""
