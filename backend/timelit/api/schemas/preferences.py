"""Schemas for the scheduling preferences store."""
from __future__ import annotations

from typing import Annotated, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

ClockText = Annotated[str, StringConstraints(pattern=r"^\d{1,2}:\d{2}$")]


class PreferencesFields(BaseModel):
    """Stored values; ``None`` means the resolver default applies."""

    auto_schedule_tasks_into_calendar: Optional[bool] = None
    schedule_mode: Optional[Literal["work", "school"]] = None
    work_start_time: Optional[ClockText] = None
    work_end_time: Optional[ClockText] = None
    school_start_time: Optional[ClockText] = None
    school_end_time: Optional[ClockText] = None
    lunch_break_enabled: Optional[bool] = None
    lunch_break_start: Optional[ClockText] = None
    lunch_break_duration: Optional[int] = Field(default=None, ge=0, le=240)
    short_break_duration: Optional[int] = Field(default=None, ge=0, le=120)
    long_break_duration: Optional[int] = Field(default=None, ge=0, le=240)
    break_frequency: Optional[str] = Field(default=None, max_length=32)
    max_consecutive_work_hours: Optional[float] = Field(default=None, gt=0, le=12)
    weekend_work_enabled: Optional[bool] = None
    prefer_morning_tasks: Optional[bool] = None
    prefer_afternoon_tasks: Optional[bool] = None
    avoid_early_meetings: Optional[bool] = None
    avoid_late_meetings: Optional[bool] = None
    meeting_buffer_time: Optional[int] = Field(default=None, ge=0, le=120)
    energy_peak_hours_start: Optional[ClockText] = None
    energy_peak_hours_end: Optional[ClockText] = None
    default_event_category: Optional[str] = Field(default=None, max_length=50)
    timezone: Optional[str] = Field(default=None, max_length=64)


class PreferencesUpdateRequest(PreferencesFields):
    model_config = ConfigDict(extra="forbid")

    user_id: UUID


class EffectivePreferences(BaseModel):
    schedule_mode: str
    work_start: str
    work_end: str
    school_start: str
    school_end: str
    lunch_break_enabled: bool
    lunch_break_start: str
    lunch_break_minutes: int
    short_break_minutes: int
    long_break_minutes: int
    break_frequency: str
    max_consecutive_minutes: int
    weekend_work_enabled: bool
    prefer_morning: bool
    prefer_afternoon: bool
    avoid_early_meetings: bool
    avoid_late_meetings: bool
    meeting_buffer_minutes: int
    energy_peak_start: str
    energy_peak_end: str
    default_event_category: str
    timezone: str


class PreferencesResponse(BaseModel):
    user_id: UUID
    stored: PreferencesFields
    effective: EffectivePreferences
    request_id: str
