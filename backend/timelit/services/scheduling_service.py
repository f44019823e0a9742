"""Persisting side of auto-scheduling.

The scheduling core works on immutable snapshots; this module loads those
snapshots from the database, re-checks the chosen slot right before writing,
and records every committed operation in ``scheduling_actions_log`` together
with the data needed to undo it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from timelit.core.config import settings
from timelit.db.models.calendar_event import CalendarEvent
from timelit.db.models.scheduling_action_log import SchedulingActionLog
from timelit.db.models.task import Task
from timelit.db.models.user import User
from timelit.db.models.user_preferences import UserPreferences
from timelit.observability.metrics import log_metric, record_scheduling_result
from timelit.observability.tracing import annotate, trace
from timelit.scheduling import SchedulingEngine, SchedulingResult, SearchState, schedule_backlog
from timelit.scheduling import models as core
from timelit.scheduling.batch import backlog_order
from timelit.scheduling.scoring import weights_for
from timelit.services.preferences_service import resolved_preferences
from timelit.services.user_service import require_owned

logger = logging.getLogger(__name__)

ACTION_AUTO_SCHEDULED = "task_auto_scheduled"
ACTION_REGENERATED = "schedule_regenerated"
SNAPSHOT_LOOKBEHIND = timedelta(days=1)


class SlotConflictError(Exception):
    """The chosen slot was taken by another writer after the snapshot was read."""


class ActionNotUndoableError(Exception):
    pass


@dataclass
class AutoScheduleOutcome:
    task: Task
    result: SchedulingResult
    events: List[CalendarEvent] = field(default_factory=list)
    action: Optional[SchedulingActionLog] = None


@dataclass
class RegenerateOutcome:
    scheduled: int
    failed: int
    removed_events: int
    action: SchedulingActionLog
    failures: Dict[str, str] = field(default_factory=dict)


def build_engine(horizon_days: Optional[int] = None) -> SchedulingEngine:
    horizon = horizon_days or settings.scheduling_horizon_days
    return SchedulingEngine(
        horizon_days=min(horizon, settings.scheduling_max_horizon_days),
        strategy=settings.scheduling_slot_strategy,
        weights=weights_for(settings.scheduling_weights_profile),
    )


def to_core_task(task: Task) -> core.Task:
    return core.Task(
        id=str(task.id),
        title=task.title,
        description=task.description,
        duration=task.duration_min,
        priority=task.priority,
        category=task.category,
        due_date=task.due_date,
        status=task.status,
    )


def to_core_event(event: CalendarEvent) -> core.CalendarEvent:
    return core.CalendarEvent(
        id=str(event.id),
        title=event.title,
        description=event.description,
        start_time=event.start_time,
        end_time=event.end_time,
        category=event.category,
        priority=event.priority,
        task_id=str(event.task_id) if event.task_id else None,
        ai_suggested=bool(event.ai_suggested),
    )


def load_event_rows(
    db: Session,
    user_id: UUID,
    window_start: datetime,
    window_end: datetime,
) -> List[CalendarEvent]:
    return (
        db.query(CalendarEvent)
        .filter(
            CalendarEvent.user_id == user_id,
            CalendarEvent.start_time < window_end,
            CalendarEvent.end_time > window_start,
        )
        .order_by(CalendarEvent.start_time.asc(), CalendarEvent.id.asc())
        .all()
    )


def auto_schedule_task(
    db: Session,
    *,
    task_id: UUID,
    user_id: UUID,
    now: Optional[datetime] = None,
    horizon_days: Optional[int] = None,
    request_id: Optional[str] = None,
) -> AutoScheduleOutcome:
    """
    Schedule one stored task and persist the result.

    Raises ValueError when the task does not exist, PermissionError when it
    belongs to someone else, and SlotConflictError when a concurrent writer
    took the slot. A task the engine cannot place is returned unchanged with
    the failed result.
    """
    task = require_owned(
        db.query(Task).filter(Task.id == task_id).with_for_update().one_or_none(), user_id, "Task"
    )

    now = now or datetime.now(timezone.utc)
    if task.status in core.CLOSED_STATUSES:
        return AutoScheduleOutcome(
            task=task,
            result=SchedulingResult.failed(f"Task is {task.status}", state=SearchState.INVALID),
        )

    engine = build_engine(horizon_days)
    prefs = resolved_preferences(db.get(UserPreferences, user_id))
    window_end = now + timedelta(days=engine.horizon_days + 2)
    rows = load_event_rows(db, user_id, now - SNAPSHOT_LOOKBEHIND, window_end)
    replaced = [row for row in rows if row.task_id == task.id and row.ai_suggested]
    snapshot = [to_core_event(row) for row in rows if row.task_id != task.id]

    metadata = {
        "task_id": str(task.id),
        "priority": task.priority,
        "duration_min": task.duration_min,
        "snapshot_events": len(snapshot),
        "horizon_days": engine.horizon_days,
    }
    start = perf_counter()
    with trace("scheduling.auto_schedule", metadata=metadata, user_id=str(user_id), request_id=request_id) as span:
        result = engine.schedule(to_core_task(task), prefs, snapshot, now)
        annotate(span, metadata, success=result.success, state=result.state.value, score=result.score)
    record_scheduling_result(
        "auto_schedule", result, (perf_counter() - start) * 1000, metadata={"priority": task.priority}
    )

    if not result.success:
        logger.info("Task %s left unscheduled: %s", task.id, result.reason)
        return AutoScheduleOutcome(task=task, result=result)

    try:
        _ensure_slot_free(db, user_id, result, ignore_task_id=task.id)
        previous = _schedule_state(task)
        removed = [_event_payload(row) for row in replaced]
        superseded = _supersede_actions(db, user_id, [row.id for row in replaced])
        for row in replaced:
            db.delete(row)
        created = _persist_result(db, user_id, task, result)
        db.flush()
        action = SchedulingActionLog(
            user_id=user_id,
            action_type=ACTION_AUTO_SCHEDULED,
            action_payload={
                "task_id": str(task.id),
                "created_event_ids": [str(row.id) for row in created],
                "removed_events": removed,
                "previous_tasks": [previous],
                "superseded_action_ids": superseded,
                "score": result.score,
                "days_searched": result.days_searched,
                "request_id": request_id or "",
            },
            reason="Task auto-scheduled",
            undo_available=True,
        )
        db.add(action)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(task)
    log_metric("scheduling.auto_schedule.persisted", len(created), metadata={"task_id": str(task.id)})
    return AutoScheduleOutcome(task=task, result=result, events=created, action=action)


def regenerate_schedule(
    db: Session,
    *,
    user_id: UUID,
    now: Optional[datetime] = None,
    horizon_days: Optional[int] = None,
    request_id: Optional[str] = None,
) -> RegenerateOutcome:
    """
    Drop the open backlog's future auto-placed events and re-place every open task.

    Manual events and events of closed tasks are left alone. Raises ValueError
    for an unknown user.
    """
    if db.get(User, user_id) is None:
        raise ValueError("User not found")
    now = now or datetime.now(timezone.utc)
    engine = build_engine(horizon_days)
    prefs = resolved_preferences(db.get(UserPreferences, user_id))

    tasks = (
        db.query(Task)
        .filter(
            Task.user_id == user_id,
            Task.status.notin_(tuple(core.CLOSED_STATUSES)),
            or_(Task.scheduled_start_time.is_(None), Task.scheduled_start_time >= now),
        )
        .order_by(Task.created_at.asc(), Task.id.asc())
        .with_for_update()
        .all()
    )
    task_ids = [task.id for task in tasks]
    stale: List[CalendarEvent] = []
    if task_ids:
        stale = (
            db.query(CalendarEvent)
            .filter(
                CalendarEvent.user_id == user_id,
                CalendarEvent.start_time >= now,
                CalendarEvent.ai_suggested.is_(True),
                CalendarEvent.task_id.in_(task_ids),
            )
            .all()
        )
    stale_ids = {row.id for row in stale}
    window_end = now + timedelta(days=engine.horizon_days + 2)
    snapshot = [
        to_core_event(row)
        for row in load_event_rows(db, user_id, now - SNAPSHOT_LOOKBEHIND, window_end)
        if row.id not in stale_ids
    ]

    metadata = {"tasks": len(tasks), "removed_events": len(stale), "snapshot_events": len(snapshot)}
    with trace("scheduling.regenerate", metadata=metadata, user_id=str(user_id), request_id=request_id) as span:
        backlog = schedule_backlog([to_core_task(task) for task in tasks], prefs, snapshot, now, engine=engine)
        annotate(span, metadata, scheduled=len(backlog.scheduled), failed=len(backlog.failed))

    by_id = {str(task.id): task for task in tasks}
    try:
        removed = [_event_payload(row) for row in stale]
        superseded = _supersede_actions(db, user_id, [row.id for row in stale])
        previous = [_schedule_state(task) for task in tasks]
        for row in stale:
            db.delete(row)
        for task in tasks:
            _clear_schedule(task)
        created: List[CalendarEvent] = []
        for entry in backlog.scheduled:
            created.extend(_persist_result(db, user_id, by_id[entry.task.id], entry.result))
        db.flush()
        action = SchedulingActionLog(
            user_id=user_id,
            action_type=ACTION_REGENERATED,
            action_payload={
                "created_event_ids": [str(row.id) for row in created],
                "removed_events": removed,
                "previous_tasks": previous,
                "superseded_action_ids": superseded,
                "failures": {entry.task.id or "": entry.result.reason or "" for entry in backlog.failed},
                "request_id": request_id or "",
            },
            reason="Schedule regenerated",
            undo_available=True,
        )
        db.add(action)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("scheduling.regenerate.scheduled", len(backlog.scheduled), metadata={"user_id": str(user_id)})
    log_metric("scheduling.regenerate.failed", len(backlog.failed), metadata={"user_id": str(user_id)})
    return RegenerateOutcome(
        scheduled=len(backlog.scheduled),
        failed=len(backlog.failed),
        removed_events=len(stale),
        action=action,
        failures={entry.task.id or "": entry.result.reason or "" for entry in backlog.failed},
    )


def undo_action(db: Session, *, action_id: UUID, user_id: UUID) -> SchedulingActionLog:
    """Invert a logged scheduling operation: drop what it created, restore what it replaced."""
    action = require_owned(db.get(SchedulingActionLog, action_id), user_id, "Action")
    if not action.undo_available or action.undone_at is not None:
        raise ActionNotUndoableError("Action cannot be undone")

    payload = action.action_payload or {}
    try:
        created_ids = [UUID(value) for value in payload.get("created_event_ids", [])]
        if created_ids:
            for row in db.query(CalendarEvent).filter(CalendarEvent.id.in_(created_ids)).all():
                db.delete(row)
        for data in payload.get("removed_events", []):
            db.add(_event_from_payload(user_id, data))
        for state in payload.get("previous_tasks", []):
            task = db.get(Task, UUID(state["task_id"]))
            if task is not None:
                _restore_schedule(task, state)
        _reinstate_actions(db, user_id, payload.get("superseded_action_ids", []))
        action.undone_at = datetime.now(timezone.utc)
        action.undo_available = False
        db.add(action)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(action)
    logger.info("Undid scheduling action %s (%s)", action.id, action.action_type)
    log_metric("scheduling.undo.success", 1, metadata={"action_type": action.action_type})
    return action


def list_actions(db: Session, user_id: UUID, *, limit: int = 20) -> List[SchedulingActionLog]:
    return (
        db.query(SchedulingActionLog)
        .filter(SchedulingActionLog.user_id == user_id)
        .order_by(SchedulingActionLog.created_at.desc(), SchedulingActionLog.id.desc())
        .limit(limit)
        .all()
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _ensure_slot_free(db: Session, user_id: UUID, result: SchedulingResult, *, ignore_task_id: UUID) -> None:
    update = result.task_update
    clash = (
        db.query(CalendarEvent)
        .filter(
            CalendarEvent.user_id == user_id,
            CalendarEvent.start_time < update.scheduled_end_time,
            CalendarEvent.end_time > update.scheduled_start_time,
            or_(CalendarEvent.task_id.is_(None), CalendarEvent.task_id != ignore_task_id),
        )
        .first()
    )
    if clash is not None:
        logger.warning(
            "Slot %s-%s taken by event %s since snapshot",
            update.scheduled_start_time.isoformat(),
            update.scheduled_end_time.isoformat(),
            clash.id,
        )
        log_metric("scheduling.auto_schedule.conflict", 1, metadata={"user_id": str(user_id)})
        raise SlotConflictError("Chosen slot is no longer free")


def _supersede_actions(db: Session, user_id: UUID, removed_event_ids: Iterable[UUID]) -> List[str]:
    """Close undo on earlier actions whose created events are being removed; returns their ids."""
    removed = {str(event_id) for event_id in removed_event_ids}
    if not removed:
        return []
    superseded: List[str] = []
    candidates = (
        db.query(SchedulingActionLog)
        .filter(
            SchedulingActionLog.user_id == user_id,
            SchedulingActionLog.undo_available.is_(True),
            SchedulingActionLog.undone_at.is_(None),
        )
        .all()
    )
    for earlier in candidates:
        created = set((earlier.action_payload or {}).get("created_event_ids", []))
        if created & removed:
            earlier.undo_available = False
            db.add(earlier)
            superseded.append(str(earlier.id))
    return superseded


def _reinstate_actions(db: Session, user_id: UUID, action_ids: Iterable[str]) -> None:
    """Undoing a replacement puts the replaced work back, so its action is undoable again."""
    for raw_id in action_ids:
        earlier = db.get(SchedulingActionLog, UUID(raw_id))
        if earlier is not None and earlier.user_id == user_id and earlier.undone_at is None:
            earlier.undo_available = True
            db.add(earlier)


def _persist_result(db: Session, user_id: UUID, task: Task, result: SchedulingResult) -> List[CalendarEvent]:
    rows = [
        CalendarEvent(
            user_id=user_id,
            task_id=task.id,
            title=proposed.title,
            description=proposed.description,
            start_time=proposed.start_time,
            end_time=proposed.end_time,
            category=proposed.category,
            priority=proposed.priority,
            ai_suggested=proposed.ai_suggested,
        )
        for proposed in result.new_events
    ]
    db.add_all(rows)
    update = result.task_update
    task.scheduled_start_time = update.scheduled_start_time
    task.scheduled_end_time = update.scheduled_end_time
    task.scheduled_date = update.scheduled_date
    task.auto_scheduled = update.auto_scheduled
    db.add(task)
    return rows


def _schedule_state(task: Task) -> Dict[str, Any]:
    return {
        "task_id": str(task.id),
        "scheduled_start_time": _iso(task.scheduled_start_time),
        "scheduled_end_time": _iso(task.scheduled_end_time),
        "scheduled_date": task.scheduled_date.isoformat() if task.scheduled_date else None,
        "auto_scheduled": bool(task.auto_scheduled),
    }


def _clear_schedule(task: Task) -> None:
    task.scheduled_start_time = None
    task.scheduled_end_time = None
    task.scheduled_date = None
    task.auto_scheduled = False


def _restore_schedule(task: Task, state: Dict[str, Any]) -> None:
    task.scheduled_start_time = _parse(state.get("scheduled_start_time"))
    task.scheduled_end_time = _parse(state.get("scheduled_end_time"))
    scheduled_date = state.get("scheduled_date")
    task.scheduled_date = datetime.fromisoformat(scheduled_date).date() if scheduled_date else None
    task.auto_scheduled = bool(state.get("auto_scheduled"))


def _event_payload(row: CalendarEvent) -> Dict[str, Any]:
    return {
        "id": str(row.id),
        "task_id": str(row.task_id) if row.task_id else None,
        "title": row.title,
        "description": row.description,
        "start_time": _iso(row.start_time),
        "end_time": _iso(row.end_time),
        "category": row.category,
        "priority": row.priority,
        "ai_suggested": bool(row.ai_suggested),
    }


def _event_from_payload(user_id: UUID, data: Dict[str, Any]) -> CalendarEvent:
    return CalendarEvent(
        id=UUID(data["id"]),
        user_id=user_id,
        task_id=UUID(data["task_id"]) if data.get("task_id") else None,
        title=data["title"],
        description=data.get("description"),
        start_time=_parse(data["start_time"]),
        end_time=_parse(data["end_time"]),
        category=data.get("category"),
        priority=data.get("priority"),
        ai_suggested=bool(data.get("ai_suggested")),
    )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def unscheduled_open_tasks(db: Session, user_id: UUID) -> List[Task]:
    """Open, unplaced tasks in backlog order (urgent first, then due date, then age)."""
    rows = (
        db.query(Task)
        .filter(
            Task.user_id == user_id,
            Task.status.notin_(tuple(core.CLOSED_STATUSES)),
            Task.scheduled_start_time.is_(None),
        )
        .order_by(Task.created_at.asc(), Task.id.asc())
        .all()
    )
    by_id = {str(row.id): row for row in rows}
    return [by_id[task.id] for task in backlog_order(to_core_task(row) for row in rows)]
