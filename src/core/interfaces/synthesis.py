"""Port for the external synthesis provider."""

from abc import ABC, abstractmethod

from src.core.entities.snapshot import Snapshot
from src.core.entities.synthesis import AISynthesis, PulseHistoryEntry


class ISynthesisProvider(ABC):
    """
    Produces an AISynthesis from a snapshot and recent history.

    Treated as slow and unreliable: implementations raise on any failure
    (transport, timeout, malformed payload) and never return a placeholder.

    Implementations: LLMSynthesisProvider
    """

    @abstractmethod
    async def synthesize(
        self,
        snapshot: Snapshot,
        history: list[PulseHistoryEntry],
    ) -> AISynthesis:
        """
        Request a synthesis.

        Args:
            snapshot: Fresh snapshot of current state
            history: Up to N most recent history entries, oldest first

        Returns:
            Validated AISynthesis
        """
        pass
