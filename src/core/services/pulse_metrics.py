"""
Derived metrics shared by the rule engine and the snapshot builder.

Plain functions over frozen state; nothing here reads the clock.
"""

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from src.core.entities.player_state import Habit, ReflectionNote, Task
from src.core.entities.synthesis import Momentum

TREND_THRESHOLD = 0.4


def local_date(ts: datetime, tz: tzinfo | None) -> date:
    """Calendar date of a timestamp in the given zone (naive stays as is)."""
    if ts.tzinfo is not None and tz is not None:
        return ts.astimezone(tz).date()
    return ts.date()


def align(ts: datetime, reference: datetime) -> datetime:
    """Give a naive timestamp the reference's zone so the two compare."""
    if ts.tzinfo is None and reference.tzinfo is not None:
        return ts.replace(tzinfo=reference.tzinfo)
    if ts.tzinfo is not None and reference.tzinfo is None:
        return ts.replace(tzinfo=None)
    return ts


def whole_days_between(earlier: datetime, later: datetime) -> int:
    seconds = (later - align(earlier, later)).total_seconds()
    return math.floor(seconds / 86400)


def completed_on(tasks: Iterable[Task], day: date, tz: tzinfo | None) -> int:
    """Number of tasks completed on a calendar day."""
    return sum(
        1
        for t in tasks
        if t.completed and t.completed_at is not None and local_date(t.completed_at, tz) == day
    )


def daily_completions(
    tasks: list[Task], today: date, days: int, tz: tzinfo | None
) -> list[int]:
    """Completed-task counts for the last `days` days, oldest first."""
    return [
        completed_on(tasks, today - timedelta(days=i), tz)
        for i in range(days - 1, -1, -1)
    ]


def energy_ratings(notes: Iterable[ReflectionNote], today: date, days: int) -> list[int]:
    """
    Energy ratings for the last `days` days, oldest first.

    Days without a reflection are skipped, so the result can be shorter
    than `days`. When a day has several notes the last one listed wins.
    """
    by_day = {n.date: n.stars for n in notes}
    ratings = []
    for i in range(days - 1, -1, -1):
        stars = by_day.get(today - timedelta(days=i))
        if stars is not None:
            ratings.append(stars)
    return ratings


def trend(values: list[int] | list[float]) -> Momentum:
    """Compare the means of the first and second halves of a series."""
    if len(values) < 2:
        return Momentum.STEADY
    mid = math.ceil(len(values) / 2)
    first, second = values[:mid], values[mid:]
    diff = sum(second) / len(second) - sum(first) / len(first)
    if diff > TREND_THRESHOLD:
        return Momentum.RISING
    if diff < -TREND_THRESHOLD:
        return Momentum.DECLINING
    return Momentum.STEADY


def habit_completion_rate(habits: list[Habit], today: date, days: int) -> float:
    """Share of habit-days completed over the trailing window (today included)."""
    if not habits:
        return 0.0
    window = {today - timedelta(days=i) for i in range(days)}
    done = sum(len(window.intersection(h.completed_dates)) for h in habits)
    return done / (len(habits) * days)
