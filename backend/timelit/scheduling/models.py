"""Value types shared by the scheduling core.

Inputs (Task, CalendarEvent, SchedulingPreferences) are frozen pydantic models
so a snapshot handed to the engine cannot be mutated by it. Transient search
values (CandidateSlot, BlockedInterval) are plain frozen dataclasses.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Priority = Literal["low", "medium", "high", "urgent"]
TaskStatus = Literal["todo", "in_progress", "done", "wont_do"]
ScheduleMode = Literal["work", "school"]

PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3, "urgent": 4}
CLOSED_STATUSES = frozenset({"done", "wont_do"})
DEFAULT_TASK_DURATION = 60
MIN_SLOT_MINUTES = 15


def _as_optional_str(value):
    if value is None:
        return None
    return str(value)


def _as_label(value):
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


class Task(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    title: str = "Untitled task"
    description: Optional[str] = None
    duration: int = DEFAULT_TASK_DURATION
    priority: Priority = "medium"
    category: Optional[str] = None
    due_date: Optional[date] = None
    status: TaskStatus = "todo"

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _as_optional_str(value)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, value):
        return _as_label(value)

    @field_validator("duration", mode="before")
    @classmethod
    def default_duration(cls, value):
        if value is None or value == "":
            return DEFAULT_TASK_DURATION
        if isinstance(value, bool):
            raise ValueError("duration must be a number of minutes")
        if isinstance(value, float):
            return int(round(value))
        return value

    @field_validator("priority", "status", mode="before")
    @classmethod
    def normalize_choice(cls, value, info):
        if value is None:
            return "medium" if info.field_name == "priority" else "todo"
        return str(value).strip().lower()

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, value):
        if value in (None, ""):
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value) > 10:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return value

    @property
    def is_open(self) -> bool:
        return self.status not in CLOSED_STATUSES


class CalendarEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    category: Optional[str] = None
    priority: Optional[str] = None
    task_id: Optional[str] = None
    ai_suggested: bool = False

    @field_validator("id", "task_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_optional_str(value)

    @field_validator("category", "priority", mode="before")
    @classmethod
    def normalize_labels(cls, value):
        return _as_label(value)

    @model_validator(mode="after")
    def check_order(self) -> "CalendarEvent":
        if self.end_time < self.start_time:
            raise ValueError("event end_time precedes start_time")
        return self


class NewCalendarEvent(BaseModel):
    """An event proposed by the engine; persisting it is the caller's job."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    task_id: Optional[str] = None
    category: str
    priority: str
    ai_suggested: bool = True


class TaskScheduleUpdate(BaseModel):
    model_config = ConfigDict(frozen=True)

    scheduled_start_time: datetime
    scheduled_end_time: datetime
    scheduled_date: date
    auto_scheduled: bool = True


class SchedulingPreferences(BaseModel):
    """Canonical scheduling configuration; build it with ``resolve_preferences``."""

    model_config = ConfigDict(frozen=True)

    schedule_mode: ScheduleMode = "work"
    work_start: time = time(9, 0)
    work_end: time = time(17, 0)
    school_start: time = time(8, 0)
    school_end: time = time(15, 0)
    lunch_break_enabled: bool = True
    lunch_break_start: time = time(12, 0)
    lunch_break_minutes: int = 60
    short_break_minutes: int = 15
    long_break_minutes: int = 30
    break_frequency: str = "every_2_hours"
    max_consecutive_minutes: int = 120
    weekend_work_enabled: bool = False
    prefer_morning: bool = False
    prefer_afternoon: bool = False
    avoid_early_meetings: bool = False
    avoid_late_meetings: bool = False
    meeting_buffer_minutes: int = 10
    energy_peak_start: time = time(9, 0)
    energy_peak_end: time = time(11, 0)
    default_event_category: str = "work"
    timezone: str = "UTC"

    def working_window(self) -> tuple[time, time]:
        if self.schedule_mode == "school":
            return self.school_start, self.school_end
        return self.work_start, self.work_end


class BlockedKind(str, Enum):
    EXISTING_EVENT = "existing_event"
    LUNCH_BREAK = "lunch_break"
    NON_WORK_HOURS = "non_work_hours"


@dataclass(frozen=True)
class BlockedInterval:
    start: datetime
    end: datetime
    kind: BlockedKind
    title: Optional[str] = None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start


@dataclass(frozen=True)
class CandidateSlot:
    start: datetime
    end: datetime
    available_minutes: int
    day: date

    @classmethod
    def between(cls, start: datetime, end: datetime, day: date) -> "CandidateSlot":
        # A slot that rounds down to nothing is widened rather than rejected.
        if end - start < timedelta(minutes=MIN_SLOT_MINUTES):
            end = start + timedelta(minutes=MIN_SLOT_MINUTES)
        return cls(
            start=start,
            end=end,
            available_minutes=int((end - start).total_seconds() // 60),
            day=day,
        )


class SearchState(str, Enum):
    SEARCHING = "searching"
    FOUND = "found"
    EXHAUSTED = "exhausted"
    INVALID = "invalid"


class ScoreComponent(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule: str
    delta: float


class SlotSuggestion(BaseModel):
    """One ranked option: where the task would start and end, and why it scored as it did."""

    model_config = ConfigDict(frozen=True)

    start_time: datetime
    end_time: datetime
    available_minutes: int
    score: float
    breakdown: List[ScoreComponent] = Field(default_factory=list)


class SchedulingResult(BaseModel):
    """Outcome of one scheduling request; ``success`` discriminates the shape."""

    model_config = ConfigDict(frozen=True)

    success: bool
    state: SearchState
    new_events: List[NewCalendarEvent] = Field(default_factory=list)
    task_update: Optional[TaskScheduleUpdate] = None
    reason: Optional[str] = None
    score: Optional[float] = None
    breakdown: List[ScoreComponent] = Field(default_factory=list)
    days_searched: int = 0

    @classmethod
    def found(
        cls,
        *,
        new_events: List[NewCalendarEvent],
        task_update: TaskScheduleUpdate,
        score: float,
        breakdown: List[ScoreComponent],
        days_searched: int,
    ) -> "SchedulingResult":
        return cls(
            success=True,
            state=SearchState.FOUND,
            new_events=new_events,
            task_update=task_update,
            score=score,
            breakdown=breakdown,
            days_searched=days_searched,
        )

    @classmethod
    def failed(cls, reason: str, *, state: SearchState, days_searched: int = 0) -> "SchedulingResult":
        return cls(success=False, state=state, reason=reason, days_searched=days_searched)
