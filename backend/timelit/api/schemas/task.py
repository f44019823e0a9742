"""Schemas for task endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from timelit.api.schemas.scheduling import AutoScheduleResponse


class TaskSummary(BaseModel):
    id: UUID
    title: str
    description: Optional[str]
    duration_min: int
    priority: str
    category: Optional[str]
    due_date: Optional[date]
    status: str
    scheduled_start_time: Optional[datetime]
    scheduled_end_time: Optional[datetime]
    scheduled_date: Optional[date]
    auto_scheduled: bool
    created_at: datetime
    updated_at: datetime


class TaskCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    duration_min: int = Field(default=60, ge=1, le=24 * 60)
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
    category: Optional[str] = Field(default=None, max_length=50)
    due_date: Optional[date] = None
    auto_schedule: Optional[bool] = None


class TaskCreateResponse(BaseModel):
    task: TaskSummary
    schedule: Optional[AutoScheduleResponse] = None
    request_id: str


class TaskStatusUpdateRequest(BaseModel):
    user_id: UUID
    status: Literal["todo", "in_progress", "done", "wont_do"]


class TaskStatusUpdateResponse(BaseModel):
    id: UUID
    status: str
    request_id: str
