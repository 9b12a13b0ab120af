"""Trigger events that request a synthesis refresh."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class PulseEventType(str, Enum):
    """Named state transitions that warrant a new synthesis."""

    BATCH_COMPLETE = "batch_complete"
    REFLECTION_SUBMITTED = "reflection_submitted"
    STREAK_BROKEN = "streak_broken"
    INITIAL_LOAD = "initial_load"
    MANUAL = "manual"


class PulseEvent(BaseModel):
    """A detected trigger. Only manual events bypass the cooldown."""

    type: PulseEventType
    detail: dict[str, Any] = Field(default_factory=dict)

    @property
    def forced(self) -> bool:
        return self.type == PulseEventType.MANUAL

    @classmethod
    def manual(cls) -> "PulseEvent":
        return cls(type=PulseEventType.MANUAL)
