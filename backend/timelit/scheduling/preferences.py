"""Normalize raw user preference fields into SchedulingPreferences."""
from __future__ import annotations

import logging
from datetime import time
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timelit.scheduling.models import SchedulingPreferences

logger = logging.getLogger(__name__)

DEFAULTS = SchedulingPreferences()

# raw field name -> (canonical field, parser)
_TIME_FIELDS = {
    "work_start_time": "work_start",
    "work_end_time": "work_end",
    "school_start_time": "school_start",
    "school_end_time": "school_end",
    "lunch_break_start": "lunch_break_start",
    "energy_peak_hours_start": "energy_peak_start",
    "energy_peak_hours_end": "energy_peak_end",
}
_MINUTE_FIELDS = {
    "lunch_break_duration": "lunch_break_minutes",
    "short_break_duration": "short_break_minutes",
    "break_duration_between_tasks": "short_break_minutes",
    "long_break_duration": "long_break_minutes",
    "meeting_buffer_time": "meeting_buffer_minutes",
}
_FLAG_FIELDS = {
    "lunch_break_enabled": "lunch_break_enabled",
    "weekend_work_enabled": "weekend_work_enabled",
    "prefer_morning_tasks": "prefer_morning",
    "prefer_afternoon_tasks": "prefer_afternoon",
    "avoid_early_meetings": "avoid_early_meetings",
    "avoid_late_meetings": "avoid_late_meetings",
}


def resolve_preferences(
    raw: Optional[Mapping[str, Any] | SchedulingPreferences] = None,
    *,
    default_timezone: str | None = None,
) -> SchedulingPreferences:
    """
    Fill every scheduling field, falling back to defaults for anything missing.

    ``raw`` uses the field names of the preferences store (``work_start_time``,
    ``meeting_buffer_time``, ...). Values that cannot be parsed are ignored
    rather than rejected. An already resolved object is returned unchanged.
    """
    if isinstance(raw, SchedulingPreferences):
        return raw
    raw = dict(raw or {})
    resolved: dict[str, Any] = {}

    mode = str(raw.get("schedule_mode") or "").strip().lower()
    if mode in ("work", "school"):
        resolved["schedule_mode"] = mode

    for source, target in _TIME_FIELDS.items():
        parsed = parse_clock(raw.get(source))
        if parsed is not None:
            resolved[target] = parsed

    # Alias first so an explicit short_break_duration wins.
    for source in ("break_duration_between_tasks", "lunch_break_duration", "short_break_duration",
                   "long_break_duration", "meeting_buffer_time"):
        minutes = _parse_minutes(raw.get(source))
        if minutes is not None:
            resolved[_MINUTE_FIELDS[source]] = minutes

    hours = _parse_number(raw.get("max_consecutive_work_hours"))
    if hours is not None and hours > 0:
        resolved["max_consecutive_minutes"] = int(round(hours * 60))

    for source, target in _FLAG_FIELDS.items():
        flag = _parse_flag(raw.get(source))
        if flag is not None:
            resolved[target] = flag

    frequency = raw.get("break_frequency")
    if isinstance(frequency, str) and frequency.strip():
        resolved["break_frequency"] = frequency.strip().lower()

    category = raw.get("default_event_category")
    if isinstance(category, str) and category.strip():
        resolved["default_event_category"] = category.strip().lower()

    tz_name = raw.get("timezone") or default_timezone
    if tz_name and _valid_timezone(str(tz_name)):
        resolved["timezone"] = str(tz_name)

    prefs = DEFAULTS.model_copy(update=resolved)
    return _repair_windows(prefs)


def parse_clock(value: Any) -> Optional[time]:
    """Parse ``"HH:MM"`` (or a ``time``) into a time of day; None when malformed."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


def _parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_minutes(value: Any) -> Optional[int]:
    number = _parse_number(value)
    if number is None or number < 0:
        return None
    return int(round(number))


def _parse_flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
    return None


def _valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug("Ignoring unknown timezone preference %r", name)
        return False
    return True


def _repair_windows(prefs: SchedulingPreferences) -> SchedulingPreferences:
    """Swap back to defaults any window whose end is not after its start."""
    updates: dict[str, Any] = {}
    if prefs.work_end <= prefs.work_start:
        updates.update(work_start=DEFAULTS.work_start, work_end=DEFAULTS.work_end)
    if prefs.school_end <= prefs.school_start:
        updates.update(school_start=DEFAULTS.school_start, school_end=DEFAULTS.school_end)
    if prefs.energy_peak_end <= prefs.energy_peak_start:
        updates.update(energy_peak_start=DEFAULTS.energy_peak_start, energy_peak_end=DEFAULTS.energy_peak_end)
    if not updates:
        return prefs
    return prefs.model_copy(update=updates)
