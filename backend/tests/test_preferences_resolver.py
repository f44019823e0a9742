from __future__ import annotations

from datetime import time

from timelit.scheduling import SchedulingPreferences, resolve_preferences
from timelit.scheduling.preferences import parse_clock


def test_empty_input_yields_defaults() -> None:
    prefs = resolve_preferences({})

    assert prefs == SchedulingPreferences()
    assert prefs.work_start == time(9, 0)
    assert prefs.work_end == time(17, 0)
    assert prefs.lunch_break_start == time(12, 0)
    assert prefs.lunch_break_minutes == 60
    assert prefs.meeting_buffer_minutes == 10
    assert prefs.timezone == "UTC"


def test_none_is_treated_as_empty() -> None:
    assert resolve_preferences(None) == SchedulingPreferences()


def test_store_field_names_are_mapped() -> None:
    prefs = resolve_preferences(
        {
            "work_start_time": "08:30",
            "work_end_time": "18:00",
            "lunch_break_duration": 45,
            "meeting_buffer_time": "15",
            "weekend_work_enabled": "true",
            "prefer_morning_tasks": 1,
            "max_consecutive_work_hours": 1.5,
            "default_event_category": " Learning ",
            "schedule_mode": "School",
        }
    )

    assert prefs.work_start == time(8, 30)
    assert prefs.work_end == time(18, 0)
    assert prefs.lunch_break_minutes == 45
    assert prefs.meeting_buffer_minutes == 15
    assert prefs.weekend_work_enabled is True
    assert prefs.prefer_morning is True
    assert prefs.max_consecutive_minutes == 90
    assert prefs.default_event_category == "learning"
    assert prefs.schedule_mode == "school"


def test_malformed_values_fall_back_to_defaults() -> None:
    prefs = resolve_preferences(
        {
            "work_start_time": "25:00",
            "work_end_time": "five pm",
            "lunch_break_duration": -30,
            "weekend_work_enabled": "maybe",
            "schedule_mode": "vacation",
            "max_consecutive_work_hours": 0,
        }
    )

    assert prefs.work_start == time(9, 0)
    assert prefs.work_end == time(17, 0)
    assert prefs.lunch_break_minutes == 60
    assert prefs.weekend_work_enabled is False
    assert prefs.schedule_mode == "work"
    assert prefs.max_consecutive_minutes == 120


def test_inverted_work_window_is_repaired() -> None:
    prefs = resolve_preferences({"work_start_time": "18:00", "work_end_time": "08:00"})

    assert (prefs.work_start, prefs.work_end) == (time(9, 0), time(17, 0))


def test_explicit_short_break_wins_over_alias() -> None:
    prefs = resolve_preferences({"break_duration_between_tasks": 5, "short_break_duration": 20})
    assert prefs.short_break_minutes == 20

    alias_only = resolve_preferences({"break_duration_between_tasks": 5})
    assert alias_only.short_break_minutes == 5


def test_timezone_validation_and_default() -> None:
    assert resolve_preferences({"timezone": "Not/AZone"}).timezone == "UTC"
    assert resolve_preferences({}, default_timezone="Europe/Berlin").timezone == "Europe/Berlin"
    assert resolve_preferences({"timezone": "Asia/Tokyo"}, default_timezone="Europe/Berlin").timezone == "Asia/Tokyo"


def test_resolved_preferences_pass_through() -> None:
    prefs = SchedulingPreferences(weekend_work_enabled=True)

    assert resolve_preferences(prefs) is prefs


def test_parse_clock() -> None:
    assert parse_clock("7:05") == time(7, 5)
    assert parse_clock(time(10, 15, 30)) == time(10, 15)
    assert parse_clock("noon") is None
    assert parse_clock(900) is None
    assert parse_clock("12:60") is None
