"""
Runtime configuration for Nexus Pulse.

Each concern has its own settings class and environment prefix
(PULSE_, LLM_, STORAGE_, API_). Values may also come from a .env file.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PulseSettings(BaseSettings):
    """Insight engine tuning."""

    model_config = SettingsConfigDict(env_prefix="PULSE_")

    cooldown_seconds: int = Field(default=300, gt=0)
    synthesis_timeout: float = Field(default=30.0, gt=0)
    refresh_on_start: bool = True

    # History is capped at max_entries days; context_entries are sent to the model
    history_max_entries: int = Field(default=30, gt=0)
    history_context_entries: int = Field(default=7, ge=0)

    # Trigger detection
    batch_complete_threshold: int = Field(default=3, gt=0)
    streak_milestones: list[int] = [7, 14, 30, 50, 100]

    cache_key: str = "nexus-pulse-ai"
    history_key: str = "nexus-pulse-history"


class LLMSettings(BaseSettings):
    """Synthesis model connection and resilience."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    provider: Literal["ollama"] = "ollama"
    host: str = "http://localhost:11434"
    model_name: str = "llama3.1:8b"
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, gt=0)
    timeout: int = Field(default=30, gt=0)
    warmup_on_start: bool = False

    max_retries: int = Field(default=2, ge=1)
    retry_delay: float = Field(default=1.0, ge=0.0)
    retry_multiplier: float = 2.0

    # Consecutive transport failures before the breaker opens
    failure_threshold: int = Field(default=3, gt=0)
    cooldown_seconds: int = Field(default=60, gt=0)


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "pulse.db"
    pool_size: int = Field(default=3, gt=0)
    busy_timeout: int = 30000  # ms

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class APISettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Nexus Pulse"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    pulse: PulseSettings = Field(default_factory=PulseSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached Settings so the next call re-reads the environment."""
    global _settings
    _settings = None
