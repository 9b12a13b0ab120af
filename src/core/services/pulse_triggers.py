"""
Pulse trigger detection.

Compares consecutive player states and names the transitions that should
request a fresh synthesis. Pure boolean logic, no LLM calls.
"""

from src.config import get_logger
from src.core.entities.player_state import PlayerState
from src.core.entities.pulse_event import PulseEvent, PulseEventType

logger = get_logger(__name__)


class PulseTriggerDetector:
    """
    Detects trigger events across one state transition.

    Trigger conditions:
    1. Completed-quest count jumped by at least `batch_threshold`
    2. A reflection was submitted
    3. The day streak dropped from a positive value
    """

    def __init__(self, batch_threshold: int = 3) -> None:
        self._batch_threshold = batch_threshold

    def on_state_change(
        self, previous: PlayerState | None, current: PlayerState
    ) -> list[PulseEvent]:
        """
        Return the events raised by moving from `previous` to `current`.

        The first state ever observed raises nothing.
        """
        if previous is None:
            return []

        events: list[PulseEvent] = []
        for check in (
            self._check_batch_complete,
            self._check_reflection_submitted,
            self._check_streak_broken,
        ):
            event = check(previous, current)
            if event is not None:
                logger.debug("pulse_trigger_detected", trigger=event.type.value, **event.detail)
                events.append(event)
        return events

    def _check_batch_complete(
        self, previous: PlayerState, current: PlayerState
    ) -> PulseEvent | None:
        delta = current.completed_task_count - previous.completed_task_count
        if delta < self._batch_threshold:
            return None
        return PulseEvent(
            type=PulseEventType.BATCH_COMPLETE,
            detail={"completed_delta": delta},
        )

    def _check_reflection_submitted(
        self, previous: PlayerState, current: PlayerState
    ) -> PulseEvent | None:
        # The reflection log is capped upstream, so a full log can gain an
        # entry without growing.
        grew = len(current.reflection_notes) > len(previous.reflection_notes)
        added = set(current.reflection_notes) - set(previous.reflection_notes)
        if not grew and not added:
            return None
        return PulseEvent(
            type=PulseEventType.REFLECTION_SUBMITTED,
            detail={"reflections": len(current.reflection_notes)},
        )

    def _check_streak_broken(
        self, previous: PlayerState, current: PlayerState
    ) -> PulseEvent | None:
        if previous.streak <= 0 or current.streak >= previous.streak:
            return None
        return PulseEvent(
            type=PulseEventType.STREAK_BROKEN,
            detail={"previous_streak": previous.streak, "streak": current.streak},
        )
