"""Build the non-bookable intervals of a single day."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List

from timelit.scheduling import clock
from timelit.scheduling.models import BlockedInterval, BlockedKind, CalendarEvent, SchedulingPreferences

DEFAULT_EVENT_BUFFER_MINUTES = 5
MEETING_CATEGORY = "meeting"


def build_blocked_intervals(
    day: date,
    existing_events: Iterable[CalendarEvent],
    prefs: SchedulingPreferences,
) -> List[BlockedInterval]:
    """
    Collect everything on ``day`` that a new task may not overlap.

    Existing events touching the day are padded on both sides (meetings by the
    configured meeting buffer, everything else by five minutes), then the lunch
    break and the hours outside the working window are added. The result is
    sorted so identical inputs always produce identical lists.
    """
    tz = clock.zone_for(prefs.timezone)
    day_start, day_end = clock.day_bounds(day, tz)
    intervals: List[BlockedInterval] = []

    for event in existing_events:
        start = clock.as_local(event.start_time, tz)
        end = clock.as_local(event.end_time, tz)
        touches_day = day_start <= start < day_end or day_start <= end < day_end
        spans_day = start < day_start and end >= day_end
        if not (touches_day or spans_day):
            continue
        buffer = timedelta(minutes=event_buffer_minutes(event, prefs))
        intervals.append(
            BlockedInterval(
                start=start - buffer,
                end=end + buffer,
                kind=BlockedKind.EXISTING_EVENT,
                title=event.title or None,
            )
        )

    if prefs.lunch_break_enabled and prefs.lunch_break_minutes > 0:
        lunch_start = clock.at(day, prefs.lunch_break_start, tz)
        intervals.append(
            BlockedInterval(
                start=lunch_start,
                end=lunch_start + timedelta(minutes=prefs.lunch_break_minutes),
                kind=BlockedKind.LUNCH_BREAK,
                title="Lunch Break",
            )
        )

    window_start, window_end = prefs.working_window()
    work_start = clock.at(day, window_start, tz)
    work_end = clock.at(day, window_end, tz)
    if work_start > day_start:
        intervals.append(
            BlockedInterval(start=day_start, end=work_start, kind=BlockedKind.NON_WORK_HOURS, title="Before Work Hours")
        )
    if work_end < day_end:
        intervals.append(
            BlockedInterval(start=work_end, end=day_end, kind=BlockedKind.NON_WORK_HOURS, title="After Work Hours")
        )

    return sorted(intervals, key=lambda item: (item.start, item.end, item.kind.value, item.title or ""))


def event_buffer_minutes(event: CalendarEvent, prefs: SchedulingPreferences) -> int:
    if event.category == MEETING_CATEGORY:
        return prefs.meeting_buffer_minutes
    return DEFAULT_EVENT_BUFFER_MINUTES


def overlaps_any(start, end, intervals: Iterable[BlockedInterval]) -> bool:
    return any(interval.overlaps(start, end) for interval in intervals)
