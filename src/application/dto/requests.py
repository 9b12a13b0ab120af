"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from pydantic import BaseModel, Field

from src.core.entities.player_state import PlayerState


class UpdateStateRequest(BaseModel):
    """Replace the live player state."""

    state: PlayerState = Field(..., description="Full player state aggregate")


class RefreshRequest(BaseModel):
    """Manual synthesis refresh. Always bypasses the cooldown."""

    wait: bool = Field(
        default=False,
        description="Wait for the refresh to finish and report its outcome",
    )
