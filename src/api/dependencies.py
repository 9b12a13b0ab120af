"""FastAPI dependencies; tests swap these through app.dependency_overrides."""

from src.application.pulse_feed import PulseFeed
from src.application.services import get_pulse_feed
from src.core.interfaces import ILLMProvider
from src.infrastructure.llm import get_llm_provider


async def get_feed() -> PulseFeed:
    return await get_pulse_feed()


def get_llm() -> ILLMProvider:
    return get_llm_provider()
