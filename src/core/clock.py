"""
Wall-clock access for the pulse engine.

Everything that depends on "today" or "now" takes a Clock so tests can
pin time. Day keys are local calendar dates in ISO format.
"""

from datetime import date, datetime, timedelta


class Clock:
    """System clock in local time."""

    def now(self) -> datetime:
        return datetime.now().astimezone()

    def today(self) -> date:
        return self.now().date()

    def day_key(self) -> str:
        return self.today().isoformat()

    def epoch_ms(self) -> int:
        return int(self.now().timestamp() * 1000)

    def days_ago(self, n: int) -> date:
        return self.today() - timedelta(days=n)
