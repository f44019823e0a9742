"""Calendar event listing routes."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from timelit.api.schemas.events import EventListResponse, EventSummary
from timelit.db.deps import get_db
from timelit.observability.metrics import log_metric
from timelit.observability.tracing import trace
from timelit.services.scheduling_service import load_event_rows

router = APIRouter()

DEFAULT_WINDOW = timedelta(days=7)


@router.get("/events", response_model=EventListResponse, tags=["events"])
def list_events(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    from_: Optional[datetime] = Query(default=None, alias="from"),
    to: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
) -> EventListResponse:
    """Events overlapping [from, to); defaults to the coming week."""
    request_id = getattr(request.state, "request_id", None)
    window_start = _aware(from_) if from_ else datetime.now(timezone.utc)
    window_end = _aware(to) if to else window_start + DEFAULT_WINDOW
    if window_end <= window_start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'to' must be after 'from'")

    metadata = {
        "user_id": str(user_id),
        "from": window_start.isoformat(),
        "to": window_end.isoformat(),
        "request_id": request_id,
    }
    start = perf_counter()
    with trace("events.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        rows = load_event_rows(db, user_id, window_start, window_end)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("events.list.count", len(rows), metadata={"user_id": str(user_id)})
    log_metric("events.list.latency_ms", latency_ms, metadata={"user_id": str(user_id)})

    return EventListResponse(
        user_id=user_id,
        items=[
            EventSummary(
                id=row.id,
                task_id=row.task_id,
                title=row.title,
                description=row.description,
                start_time=row.start_time,
                end_time=row.end_time,
                category=row.category,
                priority=row.priority,
                ai_suggested=bool(row.ai_suggested),
            )
            for row in rows
        ],
        request_id=request_id or "",
    )


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
