"""Tests for player state entities."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from src.core.entities.player_state import (
    Goal,
    GoalMilestone,
    PlayerState,
    ReflectionNote,
    VocabWord,
)
from tests.factories import TODAY, completed_task, pending_task


def test_state_is_frozen():
    state = PlayerState(streak=3)
    with pytest.raises(ValidationError):
        state.streak = 4


def test_completed_task_count():
    state = PlayerState(tasks=[completed_task("a"), pending_task("b"), completed_task("c")])
    assert state.completed_task_count == 2


@pytest.mark.parametrize("stars", [0, 6])
def test_reflection_stars_bounded(stars):
    with pytest.raises(ValidationError):
        ReflectionNote(date=TODAY, stars=stars)


def test_vocab_accuracy():
    word = VocabWord(id="1", word="terse", next_review_date=TODAY, total_reviews=4, correct_reviews=3)
    assert word.accuracy == 0.75
    assert VocabWord(id="2", word="new", next_review_date=TODAY).accuracy == 0.0


def test_goal_progress():
    goal = Goal(
        id="g",
        title="Read 12 books",
        target_date=TODAY + timedelta(days=90),
        milestones=[
            GoalMilestone(id="m1", title="3 books", completed=True),
            GoalMilestone(id="m2", title="6 books"),
        ],
    )
    assert goal.milestone_progress == 0.5
    assert Goal(id="h", title="Empty", target_date=TODAY).milestone_progress == 0.0
