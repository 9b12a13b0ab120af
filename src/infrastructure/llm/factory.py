"""Provider selection from LLMSettings.provider."""

from typing import Any

from src.config import get_logger, get_settings
from src.core.exceptions import ConfigurationError
from src.core.interfaces.llm import ILLMProvider

logger = get_logger(__name__)


def get_llm_provider(provider_type: str | None = None) -> ILLMProvider:
    """
    Resolve the configured provider singleton.

    Raises:
        ConfigurationError: Unknown provider name (also a ValueError)
    """
    provider_type = provider_type or get_settings().llm.provider
    if provider_type == "ollama":
        from src.infrastructure.llm.ollama import get_ollama_provider

        return get_ollama_provider()

    raise ConfigurationError(
        f"Unknown LLM provider: {provider_type}",
        details={"provider": provider_type},
    )


async def check_llm_health(provider: ILLMProvider | None = None) -> dict[str, Any]:
    """Health of the configured provider, as a plain dict under "primary"."""
    try:
        provider = provider or get_llm_provider()
    except ConfigurationError as e:
        logger.warning("llm_health_check_failed", error=e.message)
        return {
            "primary": {
                "available": False,
                "provider": get_settings().llm.provider,
                "error": e.message,
            }
        }

    health = await provider.check_health()
    return {"primary": vars(health)}
