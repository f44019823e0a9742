from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from timelit.scheduling import CalendarEvent, SchedulingPreferences, build_blocked_intervals, generate_slots
from timelit.scheduling.blocked import overlaps_any

MONDAY = date(2025, 1, 6)
PREFS = SchedulingPreferences()


def _utc(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 6, hour, minute, tzinfo=timezone.utc)


def _blocked(*events: CalendarEvent):
    return build_blocked_intervals(MONDAY, list(events), PREFS)


def test_gap_strategy_yields_one_slot_per_gap() -> None:
    slots = generate_slots(MONDAY, 60, _blocked(), PREFS)

    assert [(slot.start, slot.end) for slot in slots] == [
        (_utc(9), _utc(10, 15)),
        (_utc(13), _utc(14, 15)),
    ]
    assert all(slot.available_minutes == 75 for slot in slots)
    assert all(slot.day == MONDAY for slot in slots)


def test_gap_strategy_skips_gaps_that_are_too_small() -> None:
    meeting = CalendarEvent(title="Sync", start_time=_utc(10), end_time=_utc(11), category="meeting")

    slots = generate_slots(MONDAY, 60, _blocked(meeting), PREFS)

    # 09:00-09:50 and 11:25-12:00 cannot hold an hour plus the guard.
    assert [slot.start for slot in slots] == [_utc(13)]


def test_gap_slot_is_capped_by_gap_length() -> None:
    late = CalendarEvent(title="Late", start_time=_utc(10, 10), end_time=_utc(16), category="work")

    slots = generate_slots(MONDAY, 60, _blocked(late), PREFS)

    # 09:00 until the buffered event at 10:05 leaves exactly 65 minutes.
    assert slots[0].start == _utc(9)
    assert slots[0].available_minutes == 65


def test_earliest_bounds_first_slot() -> None:
    slots = generate_slots(MONDAY, 60, _blocked(), PREFS, earliest=_utc(9, 30))

    assert slots[0].start == _utc(9, 30)


def test_grid_strategy_steps_every_thirty_minutes() -> None:
    blocked = _blocked()
    slots = generate_slots(MONDAY, 60, blocked, PREFS, strategy="grid")
    starts = [slot.start for slot in slots]

    assert _utc(9) in starts
    assert _utc(11) in starts
    assert _utc(11, 30) not in starts
    assert _utc(16) in starts
    assert _utc(16, 30) not in starts
    assert all(start.minute in (0, 30) for start in starts)
    assert not any(overlaps_any(slot.start, slot.end, blocked) for slot in slots)


def test_every_slot_fits_duration_and_avoids_blocked_time() -> None:
    events = [
        CalendarEvent(title="A", start_time=_utc(9, 30), end_time=_utc(10), category="meeting"),
        CalendarEvent(title="B", start_time=_utc(14), end_time=_utc(14, 45)),
    ]
    blocked = _blocked(*events)

    for strategy in ("gap", "grid"):
        for slot in generate_slots(MONDAY, 45, blocked, PREFS, strategy=strategy):
            assert slot.available_minutes >= 45
            assert not overlaps_any(slot.start, slot.end, blocked)


def test_short_durations_use_fifteen_minute_floor() -> None:
    slots = generate_slots(MONDAY, 5, _blocked(), PREFS, strategy="grid")

    assert slots
    assert all(slot.available_minutes >= 15 for slot in slots)


def test_unknown_strategy_is_rejected() -> None:
    with pytest.raises(ValueError):
        generate_slots(MONDAY, 60, _blocked(), PREFS, strategy="random")
