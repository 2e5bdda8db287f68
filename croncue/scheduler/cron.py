"""
Cron expression helpers — the only place croncue talks to croniter.

The rest of the package treats a cron string as opaque: it can be
validated, matched against a minute, and stepped to its next fire time.

Usage:
    schedule = CronSchedule("0 9 * * 1-5")
    schedule.matches(datetime(2026, 10, 19, 9, 0, tzinfo=UTC))   # True (Monday)
    schedule.next_fire_time(after=datetime.now(UTC))
"""

from __future__ import annotations

from datetime import datetime

from croniter import croniter

from croncue.core.errors import InvalidScheduleError


def is_valid(expression: str) -> bool:
    """True if croniter can parse the expression."""
    if not expression or not expression.strip():
        return False
    return croniter.is_valid(expression)


def validate(expression: str) -> str:
    """Return the expression unchanged, or raise InvalidScheduleError."""
    if not is_valid(expression):
        raise InvalidScheduleError(expression)
    return expression


class CronSchedule:
    """
    A parsed 5-field cron schedule, e.g. "0 9 * * 1-5".

    Raises InvalidScheduleError on construction if the expression is bad,
    so callers that iterate over many jobs can skip just the broken one.
    """

    def __init__(self, expression: str) -> None:
        self._expression = validate(expression)

    @property
    def expression(self) -> str:
        return self._expression

    def matches(self, at: datetime) -> bool:
        """True if the schedule fires in the minute containing ``at``.

        ``at`` is interpreted in its own timezone, so pass a local-time
        datetime to get local-time cron semantics.
        """
        minute = at.replace(second=0, microsecond=0)
        return croniter.match(self._expression, minute)

    def next_fire_time(self, after: datetime) -> datetime:
        """The first fire time strictly after ``after`` (same timezone)."""
        return croniter(self._expression, after).get_next(datetime)
