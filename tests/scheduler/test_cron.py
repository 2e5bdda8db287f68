"""Tests for croncue/scheduler/cron.py"""
from __future__ import annotations

from datetime import UTC, datetime

import pytest

from croncue.core.errors import InvalidScheduleError
from croncue.scheduler import cron
from croncue.scheduler.cron import CronSchedule

# 2026-10-19 is a Monday
MONDAY_9AM = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


class TestValidation:
    @pytest.mark.parametrize("expr", ["* * * * *", "0 9 * * 1-5", "*/5 * * * *", "30 8 1 * *"])
    def test_valid_expressions(self, expr):
        assert cron.is_valid(expr) is True
        assert cron.validate(expr) == expr

    @pytest.mark.parametrize("expr", ["", "   ", "not-a-cron-expression", "61 * * * *", "* * *"])
    def test_invalid_expressions(self, expr):
        assert cron.is_valid(expr) is False

    def test_validate_raises(self):
        with pytest.raises(InvalidScheduleError) as exc:
            cron.validate("nope")
        assert exc.value.expression == "nope"


class TestCronSchedule:
    def test_weekday_schedule_matches_monday(self):
        assert CronSchedule("0 9 * * 1-5").matches(MONDAY_9AM)

    def test_weekday_schedule_skips_sunday(self):
        sunday = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)
        assert not CronSchedule("0 9 * * 1-5").matches(sunday)

    def test_match_ignores_seconds(self):
        assert CronSchedule("0 9 * * 1-5").matches(MONDAY_9AM.replace(second=42, microsecond=7))

    def test_other_minute_does_not_match(self):
        assert not CronSchedule("0 9 * * 1-5").matches(MONDAY_9AM.replace(minute=1))

    def test_next_fire_time(self):
        nxt = CronSchedule("0 9 * * 1-5").next_fire_time(MONDAY_9AM)
        assert nxt == datetime(2026, 10, 20, 9, 0, tzinfo=UTC)

    def test_invalid_raises_on_construction(self):
        with pytest.raises(InvalidScheduleError):
            CronSchedule("every tuesday")

    def test_expression(self):
        assert CronSchedule("*/5 * * * *").expression == "*/5 * * * *"
