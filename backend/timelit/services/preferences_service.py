"""Preferences store backing the scheduler."""
from __future__ import annotations

import logging
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from timelit.core.config import settings
from timelit.db.models.user_preferences import RAW_PREFERENCE_FIELDS, UserPreferences
from timelit.scheduling import SchedulingPreferences, resolve_preferences
from timelit.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(RAW_PREFERENCE_FIELDS) | {"auto_schedule_tasks_into_calendar"}


def get_or_create_preferences(db: Session, user_id: UUID) -> UserPreferences:
    prefs = db.get(UserPreferences, user_id)
    if prefs:
        return prefs
    get_or_create_user(db, user_id)
    prefs = UserPreferences(user_id=user_id, auto_schedule_tasks_into_calendar=False)
    db.add(prefs)
    db.flush()
    return prefs


def update_preferences(db: Session, user_id: UUID, changes: Mapping[str, Any]) -> UserPreferences:
    """Apply ``changes`` (None clears a field back to its default) and commit."""
    prefs = get_or_create_preferences(db, user_id)
    applied = []
    for name, value in changes.items():
        if name not in UPDATABLE_FIELDS:
            continue
        if name == "auto_schedule_tasks_into_calendar":
            value = bool(value)
        setattr(prefs, name, value)
        applied.append(name)
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    logger.info("Updated preferences for user %s: %s", user_id, ", ".join(sorted(applied)) or "none")
    return prefs


def resolved_preferences(prefs: UserPreferences | None) -> SchedulingPreferences:
    raw = prefs.to_raw() if prefs else {}
    return resolve_preferences(raw, default_timezone=settings.default_timezone)
