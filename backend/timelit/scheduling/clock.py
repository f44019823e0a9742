"""Wall-clock helpers for day-local scheduling arithmetic."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

STEP_MINUTES = 30


def zone_for(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def as_local(value: datetime, tz: tzinfo) -> datetime:
    """Convert to ``tz``; naive values are taken to already be in ``tz``."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def at(day: date, clock: time, tz: tzinfo) -> datetime:
    return datetime.combine(day, clock, tzinfo=tz)


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Return ``[start_of_day, start_of_next_day)`` for ``day`` in ``tz``."""
    return at(day, time.min, tz), at(day + timedelta(days=1), time.min, tz)


def round_up(value: datetime, minutes: int = STEP_MINUTES) -> datetime:
    """Move ``value`` forward to the next ``minutes`` boundary (no-op when on one)."""
    floored = value.replace(second=0, microsecond=0)
    remainder = floored.minute % minutes
    if remainder == 0 and floored == value:
        return floored
    return floored + timedelta(minutes=minutes - remainder)


def minutes_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def clock_minutes(clock: time) -> int:
    return clock.hour * 60 + clock.minute


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5
