"""Schemas for calendar event listing."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class EventSummary(BaseModel):
    id: UUID
    task_id: Optional[UUID]
    title: str
    description: Optional[str]
    start_time: datetime
    end_time: datetime
    category: Optional[str]
    priority: Optional[str]
    ai_suggested: bool


class EventListResponse(BaseModel):
    user_id: UUID
    items: List[EventSummary]
    request_id: str
