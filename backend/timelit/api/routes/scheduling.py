"""Auto-scheduling API routes."""
from __future__ import annotations

from time import perf_counter
from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from timelit.api.schemas.scheduling import (
    AvailableSlotsRequest,
    AvailableSlotsResponse,
    AutoScheduleRequest,
    AutoScheduleResponse,
    CreatedEvent,
    RegenerateRequest,
    RegenerateResponse,
    SchedulingActionItem,
    SchedulingActionListResponse,
    SchedulingPreviewRequest,
    SchedulingPreviewResponse,
    UndoRequest,
    UndoResponse,
)
from timelit.core.config import settings
from timelit.db.deps import get_db
from timelit.db.models.scheduling_action_log import SchedulingActionLog
from timelit.observability.metrics import log_metric, record_scheduling_result
from timelit.observability.tracing import trace
from timelit.scheduling import SchedulingEngine, schedule_task
from timelit.scheduling.scoring import weights_for
from timelit.services.scheduling_service import (
    ACTION_AUTO_SCHEDULED,
    ACTION_REGENERATED,
    ActionNotUndoableError,
    AutoScheduleOutcome,
    SlotConflictError,
    auto_schedule_task,
    list_actions,
    regenerate_schedule,
    undo_action,
)

router = APIRouter()


@router.post("/scheduling/preview", response_model=SchedulingPreviewResponse, tags=["scheduling"])
def preview_schedule(request: Request, payload: SchedulingPreviewRequest) -> SchedulingPreviewResponse:
    """Run the scheduler on a caller-supplied snapshot without touching storage."""
    request_id = getattr(request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/scheduling/preview",
        "events": len(payload.events),
        "horizon_days": payload.horizon_days,
        "request_id": request_id,
    }
    start = perf_counter()
    with trace("scheduling.preview", metadata=metadata, request_id=request_id):
        result = schedule_task(
            payload.task,
            payload.preferences,
            payload.events,
            payload.now,
            horizon_days=payload.horizon_days or settings.scheduling_horizon_days,
            strategy=payload.strategy or settings.scheduling_slot_strategy,
            weights=weights_for(payload.weights_profile or settings.scheduling_weights_profile),
        )

    record_scheduling_result("preview", result, (perf_counter() - start) * 1000)
    return SchedulingPreviewResponse(result=result, request_id=request_id or "")


@router.post("/scheduling/available-slots", response_model=AvailableSlotsResponse, tags=["scheduling"])
def available_slots(request: Request, payload: AvailableSlotsRequest) -> AvailableSlotsResponse:
    """Ranked alternatives for a task on the first day with room; nothing is stored."""
    request_id = getattr(request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/scheduling/available-slots",
        "events": len(payload.events),
        "count": payload.count,
        "request_id": request_id,
    }
    start = perf_counter()
    with trace("scheduling.available_slots", metadata=metadata, request_id=request_id):
        try:
            engine = SchedulingEngine(
                horizon_days=payload.horizon_days or settings.scheduling_horizon_days,
                strategy=payload.strategy or settings.scheduling_slot_strategy,
                weights=weights_for(payload.weights_profile or settings.scheduling_weights_profile),
            )
            suggestions = engine.suggest(
                payload.task, payload.preferences, payload.events, payload.now, count=payload.count
            )
        except (ValueError, TypeError) as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Scheduling error: {exc}"
            )

    latency_ms = (perf_counter() - start) * 1000
    log_metric("scheduling.available_slots.count", len(suggestions), metadata={"requested": payload.count})
    log_metric("scheduling.available_slots.latency_ms", latency_ms, metadata={"requested": payload.count})
    return AvailableSlotsResponse(count=len(suggestions), items=suggestions, request_id=request_id or "")


@router.post("/tasks/{task_id}/auto-schedule", response_model=AutoScheduleResponse, tags=["scheduling"])
def auto_schedule(
    task_id: UUID,
    payload: AutoScheduleRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AutoScheduleResponse:
    request_id = getattr(request.state, "request_id", None)
    try:
        outcome = auto_schedule_task(
            db,
            task_id=task_id,
            user_id=payload.user_id,
            horizon_days=payload.horizon_days,
            request_id=request_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except SlotConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return serialize_outcome(outcome, request_id)


@router.post("/scheduling/regenerate", response_model=RegenerateResponse, tags=["scheduling"])
def regenerate(
    payload: RegenerateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> RegenerateResponse:
    """Re-place the user's open backlog after dropping future auto-placed events."""
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    try:
        outcome = regenerate_schedule(
            db,
            user_id=payload.user_id,
            horizon_days=payload.horizon_days,
            request_id=request_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    latency_ms = (perf_counter() - start) * 1000
    log_metric("scheduling.regenerate.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})

    return RegenerateResponse(
        user_id=payload.user_id,
        scheduled=outcome.scheduled,
        failed=outcome.failed,
        removed_events=outcome.removed_events,
        failures=outcome.failures,
        action_id=outcome.action.id,
        request_id=request_id or "",
    )


@router.get("/scheduling/actions", response_model=SchedulingActionListResponse, tags=["scheduling"])
def get_actions(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> SchedulingActionListResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace(
        "scheduling.actions.list",
        metadata={"user_id": str(user_id), "limit": limit, "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        actions = list_actions(db, user_id, limit=limit)

    log_metric("scheduling.actions.list.count", len(actions), metadata={"user_id": str(user_id)})
    return SchedulingActionListResponse(
        user_id=user_id,
        items=[_serialize_action(action) for action in actions],
        request_id=request_id or "",
    )


@router.post("/scheduling/actions/{action_id}/undo", response_model=UndoResponse, tags=["scheduling"])
def undo(
    action_id: UUID,
    payload: UndoRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> UndoResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace(
        "scheduling.actions.undo",
        metadata={"action_id": str(action_id), "request_id": request_id},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        try:
            action = undo_action(db, action_id=action_id, user_id=payload.user_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        except PermissionError as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
        except ActionNotUndoableError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    return UndoResponse(
        id=action.id,
        action_type=action.action_type,
        undone_at=action.undone_at,
        request_id=request_id or "",
    )


def serialize_outcome(outcome: AutoScheduleOutcome, request_id: str | None) -> AutoScheduleResponse:
    result = outcome.result
    update = result.task_update
    return AutoScheduleResponse(
        task_id=outcome.task.id,
        success=result.success,
        state=result.state.value,
        reason=result.reason,
        score=result.score,
        scheduled_start_time=update.scheduled_start_time if update else None,
        scheduled_end_time=update.scheduled_end_time if update else None,
        events=[_serialize_event(event) for event in outcome.events],
        action_id=outcome.action.id if outcome.action else None,
        request_id=request_id or "",
    )


def _serialize_event(event) -> CreatedEvent:
    return CreatedEvent(
        id=event.id,
        task_id=event.task_id,
        title=event.title,
        start_time=event.start_time,
        end_time=event.end_time,
        category=event.category,
        priority=event.priority,
    )


def _serialize_action(action: SchedulingActionLog) -> SchedulingActionItem:
    return SchedulingActionItem(
        id=action.id,
        action_type=action.action_type,
        reason=action.reason,
        undo_available=bool(action.undo_available),
        undone_at=action.undone_at,
        created_at=action.created_at,
        summary=_derive_summary(action),
    )


def _derive_summary(action: SchedulingActionLog) -> str:
    payload = action.action_payload if isinstance(action.action_payload, dict) else {}
    if action.action_type == ACTION_AUTO_SCHEDULED:
        return "Task auto-scheduled"
    if action.action_type == ACTION_REGENERATED:
        created: List[str] = payload.get("created_event_ids") or []
        failures = payload.get("failures") or {}
        return f"Schedule regenerated ({len(created)} events, {len(failures)} unplaced)"
    return action.action_type.replace("_", " ").title()
