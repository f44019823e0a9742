"""Schemas for scheduling endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from timelit.scheduling.models import SchedulingResult, SlotSuggestion


class SchedulingPreviewRequest(BaseModel):
    # Task, events and preferences stay loose here so malformed values reach
    # the engine and come back as an invalid result instead of a 422.
    task: Dict[str, Any]
    events: List[Dict[str, Any]] = Field(default_factory=list)
    preferences: Optional[Dict[str, Any]] = None
    now: datetime
    horizon_days: Optional[int] = Field(default=None, ge=1, le=14)
    strategy: Optional[Literal["gap", "grid"]] = None
    weights_profile: Optional[Literal["smart", "balanced"]] = None


class SchedulingPreviewResponse(BaseModel):
    result: SchedulingResult
    request_id: str


class AvailableSlotsRequest(SchedulingPreviewRequest):
    count: int = Field(default=10, ge=1, le=50)


class AvailableSlotsResponse(BaseModel):
    count: int
    items: List[SlotSuggestion]
    request_id: str


class CreatedEvent(BaseModel):
    id: UUID
    task_id: Optional[UUID]
    title: str
    start_time: datetime
    end_time: datetime
    category: Optional[str]
    priority: Optional[str]


class AutoScheduleRequest(BaseModel):
    user_id: UUID
    horizon_days: Optional[int] = Field(default=None, ge=1, le=14)


class AutoScheduleResponse(BaseModel):
    task_id: UUID
    success: bool
    state: str
    reason: Optional[str] = None
    score: Optional[float] = None
    scheduled_start_time: Optional[datetime] = None
    scheduled_end_time: Optional[datetime] = None
    events: List[CreatedEvent] = Field(default_factory=list)
    action_id: Optional[UUID] = None
    request_id: str


class RegenerateRequest(BaseModel):
    user_id: UUID
    horizon_days: Optional[int] = Field(default=None, ge=1, le=14)


class RegenerateResponse(BaseModel):
    user_id: UUID
    scheduled: int
    failed: int
    removed_events: int
    failures: Dict[str, str] = Field(default_factory=dict)
    action_id: UUID
    request_id: str


class SchedulingActionItem(BaseModel):
    id: UUID
    action_type: str
    reason: Optional[str]
    undo_available: bool
    undone_at: Optional[datetime]
    created_at: Optional[datetime]
    summary: str


class SchedulingActionListResponse(BaseModel):
    user_id: UUID
    items: List[SchedulingActionItem]
    request_id: str


class UndoRequest(BaseModel):
    user_id: UUID


class UndoResponse(BaseModel):
    id: UUID
    action_type: str
    undone_at: datetime
    request_id: str
