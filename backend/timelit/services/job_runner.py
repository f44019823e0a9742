"""Batch job runner that places every opted-in user's unscheduled tasks."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from timelit.db.models.user_preferences import UserPreferences
from timelit.services.scheduling_service import (
    SlotConflictError,
    auto_schedule_task,
    unscheduled_open_tasks,
)


logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    users_processed: int
    tasks_scheduled: int
    tasks_failed: int = 0
    skipped_due_to_preferences: int = 0


def _opted_in_user_ids(db: Session) -> List[UUID]:
    rows = (
        db.query(UserPreferences.user_id)
        .filter(UserPreferences.auto_schedule_tasks_into_calendar.is_(True))
        .all()
    )
    return [row[0] for row in rows]


def run_backlog_for_user(db: Session, user_id: UUID, *, now: Optional[datetime] = None) -> tuple[int, int]:
    """Schedule each unscheduled open task; returns (scheduled, failed)."""
    now = now or datetime.now(timezone.utc)
    scheduled = 0
    failed = 0
    for task in unscheduled_open_tasks(db, user_id):
        try:
            outcome = auto_schedule_task(db, task_id=task.id, user_id=user_id, now=now)
        except SlotConflictError:
            logger.info("Slot conflict for task %s; leaving it for the next run", task.id)
            failed += 1
            continue
        if outcome.result.success:
            scheduled += 1
        else:
            failed += 1
    return scheduled, failed


def run_backlog_for_all_users(
    db: Session,
    *,
    user_ids: Optional[Iterable[UUID]] = None,
    now: Optional[datetime] = None,
) -> JobRunResult:
    opted_in = set(_opted_in_user_ids(db))
    ids = list(dict.fromkeys(user_ids)) if user_ids is not None else sorted(opted_in, key=str)
    users_processed = 0
    tasks_scheduled = 0
    tasks_failed = 0
    skipped = 0
    for uid in ids:
        if uid not in opted_in:
            skipped += 1
            logger.debug("Skipping backlog for user %s due to preferences", uid)
            continue
        try:
            scheduled, failed = run_backlog_for_user(db, uid, now=now)
        except Exception:  # pragma: no cover - defensive guard
            logger.exception("Backlog job failed for user %s", uid)
            continue
        users_processed += 1
        tasks_scheduled += scheduled
        tasks_failed += failed
    return JobRunResult(
        users_processed=users_processed,
        tasks_scheduled=tasks_scheduled,
        tasks_failed=tasks_failed,
        skipped_due_to_preferences=skipped,
    )
