"""Configuration module."""

from src.config.logging import (
    bind_refresh_context,
    clear_refresh_context,
    configure_logging,
    get_logger,
)
from src.config.settings import Settings, get_settings, reset_settings

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "get_logger",
    "bind_refresh_context",
    "clear_refresh_context",
]
