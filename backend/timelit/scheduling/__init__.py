"""Automatic task-to-time-slot scheduling."""

from timelit.scheduling.batch import BacklogResult, schedule_backlog
from timelit.scheduling.blocked import build_blocked_intervals
from timelit.scheduling.engine import SchedulingEngine, schedule_task
from timelit.scheduling.models import (
    BlockedInterval,
    BlockedKind,
    CalendarEvent,
    CandidateSlot,
    NewCalendarEvent,
    SchedulingPreferences,
    SchedulingResult,
    SearchState,
    SlotSuggestion,
    Task,
    TaskScheduleUpdate,
)
from timelit.scheduling.preferences import resolve_preferences
from timelit.scheduling.scoring import (
    BALANCED_WEIGHTS,
    DEFAULT_RULES,
    SMART_WEIGHTS,
    ScoringContext,
    ScoringRule,
    ScoringWeights,
    SlotScorer,
    score_slot,
)
from timelit.scheduling.slots import generate_slots

__all__ = [
    "BALANCED_WEIGHTS",
    "BacklogResult",
    "BlockedInterval",
    "BlockedKind",
    "CalendarEvent",
    "CandidateSlot",
    "DEFAULT_RULES",
    "NewCalendarEvent",
    "SMART_WEIGHTS",
    "SchedulingEngine",
    "SchedulingPreferences",
    "SchedulingResult",
    "ScoringContext",
    "ScoringRule",
    "ScoringWeights",
    "SearchState",
    "SlotSuggestion",
    "SlotScorer",
    "Task",
    "TaskScheduleUpdate",
    "build_blocked_intervals",
    "generate_slots",
    "resolve_preferences",
    "schedule_backlog",
    "schedule_task",
    "score_slot",
]
