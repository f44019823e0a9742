"""Slot desirability scoring.

A score starts at ``weights.base`` and each ScoringRule adds a delta, in the
order of DEFAULT_RULES. Rules are plain functions so a scorer can be built
from any subset for testing or experimentation.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Tuple

from timelit.scheduling import clock
from timelit.scheduling.models import CalendarEvent, CandidateSlot, SchedulingPreferences, ScoreComponent, Task
from timelit.scheduling.slots import normalize_duration

NOON = 12 * 60


@dataclass(frozen=True)
class ScoringWeights:
    name: str
    base: float = 100.0
    priority: Mapping[str, float] = field(
        default_factory=lambda: {"urgent": 25.0, "high": 15.0, "medium": 0.0, "low": -10.0}
    )
    energy_peak_bonus: float = 30.0
    low_energy_penalty: float = -15.0
    preferred_half_bonus: float = 20.0
    opposite_half_penalty: float = -20.0
    avoid_early_penalty: float = -20.0
    avoid_late_penalty: float = -20.0
    # category -> (morning, afternoon)
    category_affinity: Mapping[str, Tuple[float, float]] = field(
        default_factory=lambda: {
            "work": (15.0, 5.0),
            "learning": (15.0, 0.0),
            "health": (10.0, 5.0),
            "errands": (0.0, 10.0),
            "personal": (0.0, 5.0),
            "finance": (10.0, 0.0),
            "home": (0.0, 10.0),
        }
    )
    urgency_near_hours: float = 4.0
    urgency_near_bonus: float = 35.0
    urgency_far_hours: float = 8.0
    urgency_far_bonus: float = 15.0
    # (days until due strictly below, bonus)
    due_date_tiers: Tuple[Tuple[int, float], ...] = ((1, 25.0), (2, 15.0), (3, 8.0))
    past_due_penalty: float = -40.0
    light_day_events: int = 3
    light_day_bonus: float = 10.0
    heavy_day_events: int = 6
    heavy_day_penalty: float = -15.0
    cluster_window_hours: float = 2.0
    cluster_threshold: int = 2
    cluster_penalty: float = -20.0
    undersized_penalty: float = -50.0
    snug_ratio: float = 1.25
    snug_bonus: float = 15.0
    loose_ratio: float = 1.5
    loose_bonus: float = 8.0
    weekend_disabled_penalty: float = -1000.0
    weekend_work_penalty: float = -10.0


# Slot-level heuristic of the in-app auto-scheduler.
SMART_WEIGHTS = ScoringWeights(name="smart")

# Task-level heuristic of the calendar assistant: steeper priority ladder,
# stronger half-of-day preference, softer energy peak.
BALANCED_WEIGHTS = ScoringWeights(
    name="balanced",
    priority={"urgent": 40.0, "high": 25.0, "medium": 10.0, "low": 0.0},
    energy_peak_bonus=25.0,
    preferred_half_bonus=30.0,
    category_affinity={
        "work": (20.0, 5.0),
        "learning": (20.0, 5.0),
        "health": (15.0, 0.0),
        "errands": (0.0, 15.0),
        "personal": (0.0, 10.0),
        "finance": (10.0, 5.0),
        "home": (0.0, 15.0),
    },
)

WEIGHT_PROFILES: Dict[str, ScoringWeights] = {
    SMART_WEIGHTS.name: SMART_WEIGHTS,
    BALANCED_WEIGHTS.name: BALANCED_WEIGHTS,
}


def weights_for(profile: str) -> ScoringWeights:
    try:
        return WEIGHT_PROFILES[profile.lower()]
    except KeyError:
        raise ValueError(f"Unknown scoring profile: {profile}") from None


@dataclass(frozen=True)
class ScoringContext:
    """Everything a rule may look at besides the slot and the task."""

    now: datetime
    prefs: SchedulingPreferences
    weights: ScoringWeights
    events: Tuple[CalendarEvent, ...] = ()
    events_per_day: Mapping[date, int] = field(default_factory=dict)
    task_event_starts: Tuple[datetime, ...] = ()

    @classmethod
    def build(
        cls,
        *,
        now: datetime,
        prefs: SchedulingPreferences,
        events: Iterable[CalendarEvent] = (),
        weights: ScoringWeights = SMART_WEIGHTS,
    ) -> "ScoringContext":
        tz = clock.zone_for(prefs.timezone)
        snapshot = tuple(events)
        starts = [clock.as_local(event.start_time, tz) for event in snapshot]
        return cls(
            now=clock.as_local(now, tz),
            prefs=prefs,
            weights=weights,
            events=snapshot,
            events_per_day=dict(Counter(start.date() for start in starts)),
            task_event_starts=tuple(
                start for start, event in zip(starts, snapshot) if event.task_id is not None
            ),
        )


RuleFn = Callable[[CandidateSlot, Task, date, ScoringContext], float]


@dataclass(frozen=True)
class ScoringRule:
    name: str
    apply: RuleFn


def _in_window(value: datetime, start: time, end: time) -> bool:
    return clock.clock_minutes(start) <= clock.minutes_of_day(value) < clock.clock_minutes(end)


def priority_weight(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    return ctx.weights.priority.get(task.priority, 0.0)


def energy_peak(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    if _in_window(slot.start, ctx.prefs.energy_peak_start, ctx.prefs.energy_peak_end):
        return ctx.weights.energy_peak_bonus
    return 0.0


def low_energy(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    minute = clock.minutes_of_day(slot.start)
    if minute < 8 * 60 or minute >= 19 * 60 or NOON <= minute < 14 * 60:
        return ctx.weights.low_energy_penalty
    return 0.0


def time_of_day_preference(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    prefs, weights = ctx.prefs, ctx.weights
    minute = clock.minutes_of_day(slot.start)
    morning = minute < NOON
    delta = 0.0
    if prefs.prefer_morning:
        delta += weights.preferred_half_bonus if morning else weights.opposite_half_penalty
    if prefs.prefer_afternoon:
        delta += weights.opposite_half_penalty if morning else weights.preferred_half_bonus
    if prefs.avoid_early_meetings and minute < 9 * 60:
        delta += weights.avoid_early_penalty
    if prefs.avoid_late_meetings and minute >= 16 * 60:
        delta += weights.avoid_late_penalty
    return delta


def category_affinity(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    table = ctx.weights.category_affinity
    morning_bonus, afternoon_bonus = table.get(task.category or "personal", table["personal"])
    return morning_bonus if clock.minutes_of_day(slot.start) < NOON else afternoon_bonus


def urgency_decay(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    if task.priority != "urgent":
        return 0.0
    hours_out = max(0.0, (slot.start - ctx.now).total_seconds() / 3600)
    if hours_out <= ctx.weights.urgency_near_hours:
        return ctx.weights.urgency_near_bonus
    if hours_out <= ctx.weights.urgency_far_hours:
        return ctx.weights.urgency_far_bonus
    return 0.0


def due_date_proximity(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    if task.priority == "urgent" or task.due_date is None:
        return 0.0
    days_left = (task.due_date - day).days
    if days_left < 0:
        return ctx.weights.past_due_penalty
    for limit, bonus in ctx.weights.due_date_tiers:
        if days_left < limit:
            return bonus
    return 0.0


def workload_balance(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    count = ctx.events_per_day.get(day, 0)
    if count < ctx.weights.light_day_events:
        return ctx.weights.light_day_bonus
    if count > ctx.weights.heavy_day_events:
        return ctx.weights.heavy_day_penalty
    return 0.0


def clustering(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    window = timedelta(hours=ctx.weights.cluster_window_hours)
    nearby = sum(1 for start in ctx.task_event_starts if abs(start - slot.start) <= window)
    if nearby > ctx.weights.cluster_threshold:
        return ctx.weights.cluster_penalty
    return 0.0


def duration_fit(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    ratio = slot.available_minutes / normalize_duration(task.duration)
    if ratio < 1:
        return ctx.weights.undersized_penalty
    if ratio <= ctx.weights.snug_ratio:
        return ctx.weights.snug_bonus
    if ratio <= ctx.weights.loose_ratio:
        return ctx.weights.loose_bonus
    return 0.0


def weekend_policy(slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
    if not clock.is_weekend(day):
        return 0.0
    if not ctx.prefs.weekend_work_enabled:
        return ctx.weights.weekend_disabled_penalty
    if task.category == "work":
        return ctx.weights.weekend_work_penalty
    return 0.0


DEFAULT_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule("priority", priority_weight),
    ScoringRule("energy_peak", energy_peak),
    ScoringRule("low_energy", low_energy),
    ScoringRule("time_of_day_preference", time_of_day_preference),
    ScoringRule("category_affinity", category_affinity),
    ScoringRule("urgency_decay", urgency_decay),
    ScoringRule("due_date_proximity", due_date_proximity),
    ScoringRule("workload_balance", workload_balance),
    ScoringRule("clustering", clustering),
    ScoringRule("duration_fit", duration_fit),
    ScoringRule("weekend_policy", weekend_policy),
)


@dataclass(frozen=True)
class ScoredSlot:
    slot: CandidateSlot
    score: float
    breakdown: Tuple[ScoreComponent, ...]


class SlotScorer:
    def __init__(self, rules: Sequence[ScoringRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def explain(self, slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> List[ScoreComponent]:
        return [ScoreComponent(rule=rule.name, delta=rule.apply(slot, task, day, ctx)) for rule in self.rules]

    def score(self, slot: CandidateSlot, task: Task, day: date, ctx: ScoringContext) -> float:
        return self._total(self.explain(slot, task, day, ctx), ctx)

    def rank(self, slots: Iterable[CandidateSlot], task: Task, ctx: ScoringContext) -> List[ScoredSlot]:
        """Score every slot; best first, earliest start on ties."""
        scored = []
        for slot in slots:
            breakdown = self.explain(slot, task, slot.day, ctx)
            scored.append(ScoredSlot(slot=slot, score=self._total(breakdown, ctx), breakdown=tuple(breakdown)))
        return sorted(scored, key=lambda item: (-item.score, item.slot.start))

    @staticmethod
    def _total(breakdown: Iterable[ScoreComponent], ctx: ScoringContext) -> float:
        return max(0.0, ctx.weights.base + sum(component.delta for component in breakdown))


def score_slot(slot: CandidateSlot, task: Task, day: date, context: ScoringContext) -> float:
    return SlotScorer().score(slot, task, day, context)
