"""
Translation of interval specifications into recurrence rules and run times.

A rule is a standard 5-field cron string (minute hour day month day_of_week,
weekdays numbered from 0 = Sunday). All times are UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.triggers.cron import CronTrigger

from ..models import IntervalKind
from .errors import ScheduleConfigError
from .types import ScheduleSpec

DEFAULT_MINUTE_STEP = 5
MAX_MINUTE_STEP = 59
MAX_HOUR_STEP = 23

# Time-of-day anchors used when a schedule leaves hour unset
DEFAULT_HOURS = {
    IntervalKind.DAILY: 1,
    IntervalKind.WEEKLY: 3,
    IntervalKind.MONTHLY: 2,
}

# Cron counts weekdays from Sunday, APScheduler from Monday
_CRON_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

CronFields = tuple[str, str, str, str, str]


def _or(value: Optional[int], default: int) -> int:
    return default if value is None else value


def _cron_fields(spec: ScheduleSpec) -> CronFields:
    kind = spec.interval
    if kind == IntervalKind.CUSTOM:
        kind = IntervalKind.MINUTES if spec.custom_interval else IntervalKind.DAILY

    if kind == IntervalKind.MINUTES:
        step = (
            min(spec.custom_interval, MAX_MINUTE_STEP)
            if spec.custom_interval
            else DEFAULT_MINUTE_STEP
        )
        return (f"*/{step}", "*", "*", "*", "*")

    if kind == IntervalKind.HOURLY:
        if spec.custom_interval:
            return ("0", f"*/{min(spec.custom_interval, MAX_HOUR_STEP)}", "*", "*", "*")
        return ("0", "*", "*", "*", "*")

    minute = str(_or(spec.minute, 0))
    hour = str(_or(spec.hour, DEFAULT_HOURS[kind]))

    if kind == IntervalKind.WEEKLY:
        return (minute, hour, "*", "*", str(_or(spec.day_of_week, 0)))
    if kind == IntervalKind.MONTHLY:
        return (minute, hour, str(_or(spec.day_of_month, 1)), "*", "*")
    return (minute, hour, "*", "*", "*")


def _trigger_from_fields(fields: CronFields) -> CronTrigger:
    minute, hour, day, month, day_of_week = fields
    if day_of_week.isdigit():
        index = int(day_of_week)
        if index >= len(_CRON_WEEKDAYS):
            raise ScheduleConfigError(f"Invalid day of week: {day_of_week}")
        day_of_week = _CRON_WEEKDAYS[index]

    try:
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
            timezone=timezone.utc,
        )
    except ValueError as e:
        raise ScheduleConfigError(f"Invalid recurrence fields {fields}: {e}") from e


def to_recurrence_rule(spec: ScheduleSpec) -> str:
    """Derive the cron rule for a schedule. Pure function of the spec fields."""
    return " ".join(_cron_fields(spec))


def build_trigger(spec: ScheduleSpec) -> CronTrigger:
    return _trigger_from_fields(_cron_fields(spec))


def trigger_from_rule(rule: str) -> CronTrigger:
    """
    Build a trigger from a previously derived rule.

    Raises:
        ScheduleConfigError: If the rule is not a 5-field cron string
    """
    parts = rule.strip().split()
    if len(parts) != 5:
        raise ScheduleConfigError(
            f"Recurrence rule must have exactly 5 fields, got '{rule}'"
        )
    return _trigger_from_fields((parts[0], parts[1], parts[2], parts[3], parts[4]))


def compute_next_run(spec: ScheduleSpec, now: Optional[datetime] = None) -> datetime:
    """
    Compute the next run time strictly after ``now`` (defaults to current UTC time).

    Naive ``now`` values are taken to be UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    trigger = build_trigger(spec)
    # A fire time equal to now is not in the future
    next_run = trigger.get_next_fire_time(None, now + timedelta(microseconds=1))
    if next_run is None:
        raise ScheduleConfigError(f"Schedule never fires: {to_recurrence_rule(spec)}")
    return next_run.astimezone(timezone.utc)
