from __future__ import annotations

from datetime import date, datetime, timezone

from timelit.scheduling import BlockedKind, CalendarEvent, SchedulingPreferences, build_blocked_intervals

MONDAY = date(2025, 1, 6)


def _utc(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def _event(start: datetime, end: datetime, category: str | None = None, title: str = "Busy") -> CalendarEvent:
    return CalendarEvent(title=title, start_time=start, end_time=end, category=category)


def test_meeting_lunch_and_non_work_hours() -> None:
    meeting = _event(_utc(MONDAY, 10), _utc(MONDAY, 11), category="meeting", title="Standup")

    blocked = build_blocked_intervals(MONDAY, [meeting], SchedulingPreferences())

    spans = [(item.start, item.end, item.kind) for item in blocked]
    assert spans == [
        (_utc(MONDAY, 0), _utc(MONDAY, 9), BlockedKind.NON_WORK_HOURS),
        (_utc(MONDAY, 9, 50), _utc(MONDAY, 11, 10), BlockedKind.EXISTING_EVENT),
        (_utc(MONDAY, 12), _utc(MONDAY, 13), BlockedKind.LUNCH_BREAK),
        (_utc(MONDAY, 17), _utc(date(2025, 1, 7), 0), BlockedKind.NON_WORK_HOURS),
    ]
    assert blocked[0].title == "Before Work Hours"
    assert blocked[1].title == "Standup"
    assert blocked[2].title == "Lunch Break"
    assert blocked[3].title == "After Work Hours"


def test_non_meeting_events_get_five_minute_buffer() -> None:
    focus = _event(_utc(MONDAY, 14), _utc(MONDAY, 15), category="work")

    blocked = build_blocked_intervals(MONDAY, [focus], SchedulingPreferences())

    existing = [item for item in blocked if item.kind == BlockedKind.EXISTING_EVENT]
    assert [(item.start, item.end) for item in existing] == [(_utc(MONDAY, 13, 55), _utc(MONDAY, 15, 5))]


def test_meeting_buffer_follows_preferences() -> None:
    meeting = _event(_utc(MONDAY, 14), _utc(MONDAY, 15), category="meeting")

    blocked = build_blocked_intervals(MONDAY, [meeting], SchedulingPreferences(meeting_buffer_minutes=0))

    existing = [item for item in blocked if item.kind == BlockedKind.EXISTING_EVENT]
    assert (existing[0].start, existing[0].end) == (_utc(MONDAY, 14), _utc(MONDAY, 15))


def test_events_on_other_days_are_ignored() -> None:
    tuesday = date(2025, 1, 7)
    other = _event(_utc(tuesday, 10), _utc(tuesday, 11))

    blocked = build_blocked_intervals(MONDAY, [other], SchedulingPreferences())

    assert all(item.kind != BlockedKind.EXISTING_EVENT for item in blocked)


def test_event_spanning_whole_day_is_blocked() -> None:
    trip = _event(_utc(date(2025, 1, 5), 8), _utc(date(2025, 1, 8), 8), title="Conference")

    blocked = build_blocked_intervals(MONDAY, [trip], SchedulingPreferences())

    assert any(item.kind == BlockedKind.EXISTING_EVENT and item.title == "Conference" for item in blocked)


def test_lunch_disabled_and_school_window() -> None:
    prefs = SchedulingPreferences(lunch_break_enabled=False, schedule_mode="school")

    blocked = build_blocked_intervals(MONDAY, [], prefs)

    assert [item.kind for item in blocked] == [BlockedKind.NON_WORK_HOURS, BlockedKind.NON_WORK_HOURS]
    assert blocked[0].end == _utc(MONDAY, 8)
    assert blocked[1].start == _utc(MONDAY, 15)


def test_intervals_use_preference_timezone() -> None:
    prefs = SchedulingPreferences(timezone="America/New_York", lunch_break_enabled=False)

    blocked = build_blocked_intervals(MONDAY, [], prefs)

    # 09:00 New York is 14:00 UTC in January.
    assert blocked[0].end.astimezone(timezone.utc) == _utc(MONDAY, 14)
