"""Task API routes."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import asc, nulls_last
from sqlalchemy.orm import Session

from timelit.api.routes.scheduling import serialize_outcome
from timelit.api.schemas.scheduling import AutoScheduleResponse
from timelit.api.schemas.task import (
    TaskCreateRequest,
    TaskCreateResponse,
    TaskStatusUpdateRequest,
    TaskStatusUpdateResponse,
    TaskSummary,
)
from timelit.db.deps import get_db
from timelit.db.models.task import Task
from timelit.db.models.user_preferences import UserPreferences
from timelit.observability.metrics import log_metric
from timelit.observability.tracing import trace
from timelit.scheduling.models import CLOSED_STATUSES
from timelit.services.scheduling_service import SlotConflictError, auto_schedule_task
from timelit.services.user_service import get_or_create_user, require_owned

router = APIRouter()


@router.post("/tasks", response_model=TaskCreateResponse, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def create_task(
    payload: TaskCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskCreateResponse:
    """Create a task and, when asked or opted in, place it on the calendar."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "user_id": str(payload.user_id),
        "priority": payload.priority,
        "duration_min": payload.duration_min,
        "request_id": request_id,
    }

    start_time = datetime.now(timezone.utc)
    try:
        with trace("task.create", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
            get_or_create_user(db, payload.user_id)
            task = Task(
                user_id=payload.user_id,
                title=payload.title.strip(),
                description=payload.description,
                duration_min=payload.duration_min,
                priority=payload.priority,
                category=payload.category,
                due_date=payload.due_date,
            )
            db.add(task)
            db.commit()
            db.refresh(task)
    except Exception:
        db.rollback()
        raise

    schedule: Optional[AutoScheduleResponse] = None
    if _wants_auto_schedule(db, payload):
        try:
            outcome = auto_schedule_task(db, task_id=task.id, user_id=payload.user_id, request_id=request_id)
            schedule = serialize_outcome(outcome, request_id)
            task = outcome.task
        except SlotConflictError as exc:
            schedule = AutoScheduleResponse(
                task_id=task.id,
                success=False,
                state="slot_conflict",
                reason=str(exc),
                request_id=request_id or "",
            )

    latency_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    log_metric("task.create.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric("task.create.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})

    return TaskCreateResponse(task=_serialize_task(task), schedule=schedule, request_id=request_id or "")


@router.get("/tasks", response_model=List[TaskSummary], tags=["tasks"])
def list_tasks(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the tasks"),
    status: str = Query("open", pattern="^(open|closed|all)$"),
    from_: Optional[date] = Query(default=None, alias="from"),
    to: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    """List tasks for a user with optional status and scheduled-date filtering."""
    request_id = getattr(http_request.state, "request_id", None)

    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "user_id": str(user_id),
        "status": status,
        "from": from_.isoformat() if from_ else None,
        "to": to.isoformat() if to else None,
        "request_id": request_id,
    }

    with trace("task.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        query = db.query(Task).filter(Task.user_id == user_id)
        if status == "open":
            query = query.filter(Task.status.notin_(tuple(CLOSED_STATUSES)))
        elif status == "closed":
            query = query.filter(Task.status.in_(tuple(CLOSED_STATUSES)))
        if from_:
            query = query.filter(Task.scheduled_date >= from_)
        if to:
            query = query.filter(Task.scheduled_date <= to)

        tasks = query.order_by(
            nulls_last(asc(Task.scheduled_start_time)),
            asc(Task.created_at),
        ).all()

    log_metric("task.list.success", 1, metadata={"user_id": str(user_id), "status": status})
    log_metric("task.list.count", len(tasks), metadata={"user_id": str(user_id), "status": status})

    return [_serialize_task(task) for task in tasks]


@router.patch("/tasks/{task_id}/status", response_model=TaskStatusUpdateResponse, tags=["tasks"])
def update_task_status(
    task_id: UUID,
    payload: TaskStatusUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskStatusUpdateResponse:
    """Move a task through todo / in_progress / done / wont_do."""
    try:
        task = require_owned(db.get(Task, task_id), payload.user_id, "Task")
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    request_id = getattr(http_request.state, "request_id", None)
    changed = task.status != payload.status
    try:
        with trace(
            "task.status",
            metadata={
                "route": f"/tasks/{task_id}/status",
                "task_id": str(task_id),
                "status": payload.status,
                "changed": changed,
                "request_id": request_id,
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            task.status = payload.status
            db.add(task)
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("task.status.changed", 1 if changed else 0, metadata={"task_id": str(task_id)})
    return TaskStatusUpdateResponse(id=task.id, status=task.status, request_id=request_id or "")


def _wants_auto_schedule(db: Session, payload: TaskCreateRequest) -> bool:
    if payload.auto_schedule is not None:
        return payload.auto_schedule
    prefs = db.get(UserPreferences, payload.user_id)
    return bool(prefs and prefs.auto_schedule_tasks_into_calendar)


def _serialize_task(task: Task) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        title=task.title,
        description=task.description,
        duration_min=task.duration_min,
        priority=task.priority,
        category=task.category,
        due_date=task.due_date,
        status=task.status,
        scheduled_start_time=task.scheduled_start_time,
        scheduled_end_time=task.scheduled_end_time,
        scheduled_date=task.scheduled_date,
        auto_scheduled=bool(task.auto_scheduled),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )
