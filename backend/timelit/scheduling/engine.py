"""Scheduling decision engine: search the horizon, commit the best slot."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from timelit.scheduling import clock
from timelit.scheduling.blocked import build_blocked_intervals, overlaps_any
from timelit.scheduling.models import (
    BlockedInterval,
    CalendarEvent,
    NewCalendarEvent,
    SchedulingPreferences,
    SchedulingResult,
    SearchState,
    SlotSuggestion,
    Task,
    TaskScheduleUpdate,
)
from timelit.scheduling.preferences import resolve_preferences
from timelit.scheduling.scoring import SMART_WEIGHTS, ScoredSlot, ScoringContext, ScoringWeights, SlotScorer
from timelit.scheduling.slots import GAP_STRATEGY, STRATEGIES, generate_slots, normalize_duration

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 7
MAX_HORIZON_DAYS = 14
BREAK_WORTHY_MINUTES = 60
BREAK_TITLE = "Break"
DEFAULT_SUGGESTION_COUNT = 10


@dataclass(frozen=True)
class _OpenDay:
    ranked: Optional[List[ScoredSlot]]
    blocked: Tuple[BlockedInterval, ...]
    duration: int
    days_searched: int


def coerce_task(task: Task | Mapping[str, Any]) -> Task:
    if isinstance(task, Task):
        return task
    return Task.model_validate(task)


def coerce_events(events: Optional[Iterable[CalendarEvent | Mapping[str, Any]]]) -> tuple[CalendarEvent, ...]:
    return tuple(
        event if isinstance(event, CalendarEvent) else CalendarEvent.model_validate(event)
        for event in (events or ())
    )


def _coerce_now(now: datetime | str) -> datetime:
    if isinstance(now, datetime):
        return now
    if isinstance(now, str):
        return datetime.fromisoformat(now.replace("Z", "+00:00"))
    raise TypeError(f"now must be a datetime, got {type(now).__name__}")


class SchedulingEngine:
    """
    Place one task into the first day of the horizon that has room for it.

    States: SEARCHING(today) -> SEARCHING(today + 1) -> ... -> EXHAUSTED, or
    SEARCHING(day) -> FOUND as soon as a day yields a candidate. The engine
    never mutates its inputs and never raises: invalid input and unexpected
    faults come back as failed results.
    """

    def __init__(
        self,
        *,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        strategy: str = GAP_STRATEGY,
        weights: ScoringWeights = SMART_WEIGHTS,
        scorer: Optional[SlotScorer] = None,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown slot strategy: {strategy}")
        self.horizon_days = min(max(int(horizon_days), 1), MAX_HORIZON_DAYS)
        self.strategy = strategy
        self.weights = weights
        self.scorer = scorer or SlotScorer()

    def schedule(
        self,
        task: Task | Mapping[str, Any],
        preferences: SchedulingPreferences | Mapping[str, Any] | None,
        existing_events: Optional[Iterable[CalendarEvent | Mapping[str, Any]]],
        now: datetime | str,
    ) -> SchedulingResult:
        try:
            return self._search(
                coerce_task(task),
                resolve_preferences(preferences),
                coerce_events(existing_events),
                _coerce_now(now),
            )
        except (ValueError, TypeError) as exc:
            # pydantic.ValidationError is a ValueError.
            logger.info("Rejected scheduling request: %s", exc)
            return SchedulingResult.failed(f"Scheduling error: {exc}", state=SearchState.INVALID)
        except Exception as exc:  # pragma: no cover - defensive guard
            logger.exception("Unexpected scheduling failure")
            return SchedulingResult.failed(f"Scheduling error: {exc}", state=SearchState.INVALID)

    def suggest(
        self,
        task: Task | Mapping[str, Any],
        preferences: SchedulingPreferences | Mapping[str, Any] | None,
        existing_events: Optional[Iterable[CalendarEvent | Mapping[str, Any]]],
        now: datetime | str,
        *,
        count: int = DEFAULT_SUGGESTION_COUNT,
    ) -> List[SlotSuggestion]:
        """
        Rank the candidates of the first day with room for ``task``, best first.

        Unlike :meth:`schedule` this raises ValueError or TypeError on invalid
        input. An empty list means the horizon has no room.
        """
        if count < 1:
            raise ValueError("count must be at least 1")
        core_task = coerce_task(task)
        open_day = self._first_open_day(
            core_task,
            resolve_preferences(preferences),
            coerce_events(existing_events),
            _coerce_now(now),
        )
        if open_day.ranked is None:
            return []
        return [
            SlotSuggestion(
                start_time=item.slot.start,
                end_time=item.slot.start + timedelta(minutes=open_day.duration),
                available_minutes=item.slot.available_minutes,
                score=item.score,
                breakdown=list(item.breakdown),
            )
            for item in open_day.ranked[:count]
        ]

    def _search(
        self,
        task: Task,
        prefs: SchedulingPreferences,
        events: Sequence[CalendarEvent],
        now: datetime,
    ) -> SchedulingResult:
        open_day = self._first_open_day(task, prefs, events, now)
        if open_day.ranked is None:
            logger.info("EXHAUSTED horizon of %d days for task=%s", self.horizon_days, task.id)
            return SchedulingResult.failed(
                f"No available time slots found in the next {self.horizon_days} days",
                state=SearchState.EXHAUSTED,
                days_searched=open_day.days_searched,
            )

        best = open_day.ranked[0]
        logger.info(
            "FOUND slot %s-%s for task=%s score=%.1f after %d day(s)",
            best.slot.start.isoformat(),
            (best.slot.start + timedelta(minutes=open_day.duration)).isoformat(),
            task.id,
            best.score,
            open_day.days_searched,
        )
        return self._commit(task, prefs, best, open_day.blocked, open_day.duration, open_day.days_searched)

    def _first_open_day(
        self,
        task: Task,
        prefs: SchedulingPreferences,
        events: Sequence[CalendarEvent],
        now: datetime,
    ) -> "_OpenDay":
        tz = clock.zone_for(prefs.timezone)
        local_now = clock.as_local(now, tz)
        duration = normalize_duration(task.duration)
        context = ScoringContext.build(now=local_now, prefs=prefs, events=events, weights=self.weights)
        today = local_now.date()
        not_before = clock.round_up(local_now)

        days_searched = 0
        for offset in range(self.horizon_days + 1):
            day = today + timedelta(days=offset)
            days_searched += 1
            if clock.is_weekend(day) and not prefs.weekend_work_enabled:
                logger.debug("SEARCHING %s skipped (weekend) task=%s", day, task.id)
                continue

            blocked = build_blocked_intervals(day, events, prefs)
            earliest = not_before if offset == 0 else None
            candidates = generate_slots(day, duration, blocked, prefs, strategy=self.strategy, earliest=earliest)
            if earliest is not None:
                candidates = [slot for slot in candidates if slot.start >= earliest]
            logger.debug("SEARCHING %s task=%s candidates=%d", day, task.id, len(candidates))
            if candidates:
                ranked = self.scorer.rank(candidates, task, context)
                return _OpenDay(ranked=ranked, blocked=tuple(blocked), duration=duration, days_searched=days_searched)

        return _OpenDay(ranked=None, blocked=(), duration=duration, days_searched=days_searched)

    def _commit(
        self,
        task: Task,
        prefs: SchedulingPreferences,
        best: ScoredSlot,
        blocked: Sequence[BlockedInterval],
        duration: int,
        days_searched: int,
    ) -> SchedulingResult:
        start = best.slot.start
        end = start + timedelta(minutes=duration)
        new_events: List[NewCalendarEvent] = [
            NewCalendarEvent(
                title=task.title,
                description=task.description or f"Scheduled: {task.title}",
                start_time=start,
                end_time=end,
                task_id=task.id,
                category=task.category or prefs.default_event_category,
                priority=task.priority,
            )
        ]
        trailing_break = _trailing_break(end, duration, prefs, blocked)
        if trailing_break is not None:
            new_events.append(trailing_break)

        return SchedulingResult.found(
            new_events=new_events,
            task_update=TaskScheduleUpdate(
                scheduled_start_time=start,
                scheduled_end_time=end,
                scheduled_date=start.date(),
            ),
            score=best.score,
            breakdown=list(best.breakdown),
            days_searched=days_searched,
        )


def _trailing_break(
    task_end: datetime,
    duration: int,
    prefs: SchedulingPreferences,
    blocked: Sequence[BlockedInterval],
) -> Optional[NewCalendarEvent]:
    if prefs.break_frequency == "never" or duration < BREAK_WORTHY_MINUTES:
        return None
    minutes = prefs.long_break_minutes if duration >= prefs.max_consecutive_minutes else prefs.short_break_minutes
    if minutes <= 0:
        return None
    break_end = task_end + timedelta(minutes=minutes)
    if overlaps_any(task_end, break_end, blocked):
        return None
    return NewCalendarEvent(
        title=BREAK_TITLE,
        description="Scheduled break",
        start_time=task_end,
        end_time=break_end,
        category="personal",
        priority="low",
    )


def schedule_task(
    task: Task | Mapping[str, Any],
    preferences: SchedulingPreferences | Mapping[str, Any] | None,
    existing_events: Optional[Iterable[CalendarEvent | Mapping[str, Any]]],
    now: datetime | str,
    *,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    strategy: str = GAP_STRATEGY,
    weights: ScoringWeights = SMART_WEIGHTS,
) -> SchedulingResult:
    """Schedule ``task`` against a snapshot of ``existing_events``; see SchedulingEngine."""
    try:
        engine = SchedulingEngine(horizon_days=horizon_days, strategy=strategy, weights=weights)
    except (ValueError, TypeError) as exc:
        return SchedulingResult.failed(f"Scheduling error: {exc}", state=SearchState.INVALID)
    return engine.schedule(task, preferences, existing_events, now)
