"""Candidate slot generation over a single working day."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from timelit.scheduling import clock
from timelit.scheduling.blocked import overlaps_any
from timelit.scheduling.models import (
    MIN_SLOT_MINUTES,
    BlockedInterval,
    BlockedKind,
    CandidateSlot,
    SchedulingPreferences,
)

GAP_STRATEGY = "gap"
GRID_STRATEGY = "grid"
STRATEGIES = (GAP_STRATEGY, GRID_STRATEGY)
GAP_GUARD_MINUTES = 5


def normalize_duration(minutes: int) -> int:
    """Required minutes for a task, never below the 15 minute floor."""
    return max(MIN_SLOT_MINUTES, int(minutes))


def generate_slots(
    day: date,
    duration_minutes: int,
    blocked: Sequence[BlockedInterval],
    prefs: SchedulingPreferences,
    *,
    strategy: str = GAP_STRATEGY,
    earliest: Optional[datetime] = None,
) -> List[CandidateSlot]:
    """
    Propose slots on ``day`` long enough for ``duration_minutes``.

    ``gap`` yields one slot per free gap; ``grid`` yields a slot every 30
    minutes of the working window. Nothing starts before ``earliest``.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown slot strategy: {strategy}")

    duration = normalize_duration(duration_minutes)
    tz = clock.zone_for(prefs.timezone)
    window_start, window_end = prefs.working_window()
    work_start = clock.at(day, window_start, tz)
    work_end = clock.at(day, window_end, tz)

    if strategy == GRID_STRATEGY:
        slots = _grid_slots(day, duration, blocked, work_start, work_end, earliest)
    else:
        slots = _gap_slots(day, duration, blocked, prefs, work_start, work_end, earliest)

    return [
        slot
        for slot in slots
        if slot.available_minutes >= duration and not overlaps_any(slot.start, slot.end, blocked)
    ]


def _grid_slots(
    day: date,
    duration: int,
    blocked: Sequence[BlockedInterval],
    work_start: datetime,
    work_end: datetime,
    earliest: Optional[datetime],
) -> List[CandidateSlot]:
    step = timedelta(minutes=clock.STEP_MINUTES)
    length = timedelta(minutes=duration)
    cursor = work_start
    while earliest is not None and cursor < earliest:
        cursor += step

    slots: List[CandidateSlot] = []
    while cursor + length <= work_end:
        end = cursor + length
        if not overlaps_any(cursor, end, blocked):
            slots.append(CandidateSlot.between(cursor, end, day))
        cursor += step
    return slots


def _gap_slots(
    day: date,
    duration: int,
    blocked: Sequence[BlockedInterval],
    prefs: SchedulingPreferences,
    work_start: datetime,
    work_end: datetime,
    earliest: Optional[datetime],
) -> List[CandidateSlot]:
    needed = timedelta(minutes=duration + GAP_GUARD_MINUTES)
    sized = timedelta(minutes=duration + prefs.short_break_minutes)
    breather = timedelta(minutes=prefs.short_break_minutes)
    slots: List[CandidateSlot] = []

    def emit(gap_start: datetime, gap_end: datetime) -> None:
        gap = gap_end - gap_start
        if gap >= needed:
            slots.append(CandidateSlot.between(gap_start, gap_start + min(gap, sized), day))

    cursor = work_start
    if earliest is not None and earliest > cursor:
        cursor = earliest

    for interval in sorted(blocked, key=lambda item: (item.start, item.end)):
        if cursor >= work_end:
            break
        if interval.end <= cursor:
            continue
        if interval.start > cursor:
            emit(cursor, min(interval.start, work_end))
        resume = interval.end
        if interval.kind == BlockedKind.EXISTING_EVENT:
            resume += breather
        cursor = max(cursor, resume)

    if cursor < work_end:
        emit(cursor, work_end)
    return slots
