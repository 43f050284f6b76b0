"""
Tests for translating schedule specs into recurrence rules and next run times.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from catalog_admin.cron.errors import ScheduleConfigError
from catalog_admin.cron.recurrence import (
    compute_next_run,
    to_recurrence_rule,
    trigger_from_rule,
)
from catalog_admin.cron.types import ScheduleSpec
from catalog_admin.models import IntervalKind


def spec(interval: IntervalKind, **kwargs) -> ScheduleSpec:
    return ScheduleSpec(interval=interval, description="test schedule", **kwargs)


class TestRecurrenceRule:
    @pytest.mark.parametrize(
        "schedule, expected",
        [
            (spec(IntervalKind.MINUTES), "*/5 * * * *"),
            (spec(IntervalKind.MINUTES, custom_interval=15), "*/15 * * * *"),
            (spec(IntervalKind.MINUTES, custom_interval=600), "*/59 * * * *"),
            (spec(IntervalKind.HOURLY), "0 * * * *"),
            (spec(IntervalKind.HOURLY, custom_interval=3), "0 */3 * * *"),
            (spec(IntervalKind.HOURLY, custom_interval=48), "0 */23 * * *"),
            (spec(IntervalKind.DAILY), "0 1 * * *"),
            (spec(IntervalKind.DAILY, hour=6, minute=30), "30 6 * * *"),
            (spec(IntervalKind.WEEKLY), "0 3 * * 0"),
            (spec(IntervalKind.WEEKLY, day_of_week=5, hour=22), "0 22 * * 5"),
            (spec(IntervalKind.MONTHLY), "0 2 1 * *"),
            (spec(IntervalKind.MONTHLY, day_of_month=15, minute=45), "45 2 15 * *"),
            (spec(IntervalKind.CUSTOM, custom_interval=10), "*/10 * * * *"),
            (spec(IntervalKind.CUSTOM), "0 1 * * *"),
        ],
    )
    def test_rule_for_each_interval_kind(self, schedule, expected):
        assert to_recurrence_rule(schedule) == expected

    def test_zero_hour_and_minute_are_honoured(self):
        """Midnight is a valid anchor, not a missing value."""
        assert to_recurrence_rule(spec(IntervalKind.DAILY, hour=0, minute=0)) == (
            "0 0 * * *"
        )
        assert to_recurrence_rule(spec(IntervalKind.WEEKLY, hour=0)) == "0 0 * * 0"

    def test_rule_ignores_fields_of_other_kinds(self):
        schedule = spec(IntervalKind.HOURLY, hour=5, day_of_week=3, day_of_month=9)
        assert to_recurrence_rule(schedule) == "0 * * * *"

    def test_rule_is_deterministic(self):
        schedule = spec(IntervalKind.WEEKLY, day_of_week=2, hour=4, minute=10)
        assert {to_recurrence_rule(schedule) for _ in range(5)} == {"10 4 * * 2"}


class TestScheduleSpecValidation:
    @pytest.mark.parametrize(
        "field, value",
        [
            ("hour", 24),
            ("hour", -1),
            ("minute", 60),
            ("day_of_week", 7),
            ("day_of_month", 0),
            ("day_of_month", 32),
            ("custom_interval", 0),
        ],
    )
    def test_out_of_range_fields_are_rejected(self, field, value):
        with pytest.raises(ValidationError):
            spec(IntervalKind.DAILY, **{field: value})

    def test_unknown_interval_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            ScheduleSpec(interval="fortnightly", description="nope")

    def test_blank_description_is_rejected(self):
        with pytest.raises(ValidationError):
            ScheduleSpec(interval=IntervalKind.DAILY, description="   ")


class TestNextRun:
    def test_daily_default_anchor(self):
        now = datetime(2024, 1, 1, 0, 30, tzinfo=timezone.utc)
        assert compute_next_run(spec(IntervalKind.DAILY), now) == datetime(
            2024, 1, 1, 1, 0, tzinfo=timezone.utc
        )

    def test_next_run_is_strictly_after_now(self):
        """A firing exactly at ``now`` belongs to the past."""
        now = datetime(2024, 1, 1, 1, 0, tzinfo=timezone.utc)
        assert compute_next_run(spec(IntervalKind.DAILY), now) == datetime(
            2024, 1, 2, 1, 0, tzinfo=timezone.utc
        )

    def test_weekly_zero_means_sunday(self):
        # 2024-01-01 is a Monday
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        next_run = compute_next_run(spec(IntervalKind.WEEKLY), now)
        assert next_run == datetime(2024, 1, 7, 3, 0, tzinfo=timezone.utc)
        assert next_run.isoweekday() == 7

    def test_weekly_saturday(self):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        next_run = compute_next_run(spec(IntervalKind.WEEKLY, day_of_week=6), now)
        assert next_run == datetime(2024, 1, 6, 3, 0, tzinfo=timezone.utc)

    def test_monthly_rolls_into_next_month(self):
        now = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert compute_next_run(spec(IntervalKind.MONTHLY), now) == datetime(
            2024, 2, 1, 2, 0, tzinfo=timezone.utc
        )

    def test_minutes_step(self):
        now = datetime(2024, 1, 1, 10, 7, 30, tzinfo=timezone.utc)
        schedule = spec(IntervalKind.MINUTES, custom_interval=15)
        assert compute_next_run(schedule, now) == datetime(
            2024, 1, 1, 10, 15, tzinfo=timezone.utc
        )

    def test_naive_now_is_treated_as_utc(self):
        naive = datetime(2024, 1, 1, 0, 30)
        aware = naive.replace(tzinfo=timezone.utc)
        schedule = spec(IntervalKind.DAILY)
        assert compute_next_run(schedule, naive) == compute_next_run(schedule, aware)

    def test_default_now_is_in_the_future(self):
        assert compute_next_run(spec(IntervalKind.HOURLY)) > datetime.now(timezone.utc)

    def test_same_input_same_output(self):
        now = datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc)
        schedule = spec(IntervalKind.WEEKLY, day_of_week=3, hour=9)
        assert compute_next_run(schedule, now) == compute_next_run(schedule, now)


class TestTriggerFromRule:
    def test_rule_with_wrong_field_count_is_rejected(self):
        with pytest.raises(ScheduleConfigError):
            trigger_from_rule("0 1 * *")

    def test_out_of_range_weekday_is_rejected(self):
        with pytest.raises(ScheduleConfigError):
            trigger_from_rule("0 1 * * 7")

    def test_invalid_field_is_rejected(self):
        with pytest.raises(ScheduleConfigError):
            trigger_from_rule("0 25 * * *")

    def test_weekday_numbering_matches_cron(self):
        trigger = trigger_from_rule("0 3 * * 0")
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        fire = trigger.get_next_fire_time(None, now)
        assert fire.isoweekday() == 7
