"""Scheduling preferences routes."""
from __future__ import annotations

from datetime import time
from time import perf_counter
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from timelit.api.schemas.preferences import (
    EffectivePreferences,
    PreferencesFields,
    PreferencesResponse,
    PreferencesUpdateRequest,
)
from timelit.db.deps import get_db
from timelit.db.models.user_preferences import UserPreferences
from timelit.observability.metrics import log_metric
from timelit.observability.tracing import trace
from timelit.scheduling import SchedulingPreferences
from timelit.services.preferences_service import (
    UPDATABLE_FIELDS,
    get_or_create_preferences,
    resolved_preferences,
    update_preferences,
)

router = APIRouter()


@router.get("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def get_preferences(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> PreferencesResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("preferences.get", metadata={"user_id": str(user_id)}, user_id=str(user_id), request_id=request_id):
        prefs = get_or_create_preferences(db, user_id)
        db.commit()
    return _build_response(prefs, request_id)


@router.put("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def put_preferences(
    payload: PreferencesUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> PreferencesResponse:
    """Store the fields present in the body; explicit nulls reset a field to its default."""
    request_id = getattr(request.state, "request_id", None)
    changes = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True).items()
        if name in UPDATABLE_FIELDS
    }

    start = perf_counter()
    with trace(
        "preferences.update",
        metadata={"user_id": str(payload.user_id), "fields": sorted(changes), "request_id": request_id},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        try:
            prefs = update_preferences(db, payload.user_id, changes)
        except Exception:
            db.rollback()
            raise

    latency_ms = (perf_counter() - start) * 1000
    log_metric("preferences.update.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric("preferences.update.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})
    return _build_response(prefs, request_id)


def _build_response(prefs: UserPreferences, request_id: str | None) -> PreferencesResponse:
    stored = PreferencesFields(
        auto_schedule_tasks_into_calendar=bool(prefs.auto_schedule_tasks_into_calendar),
        **prefs.to_raw(),
    )
    return PreferencesResponse(
        user_id=prefs.user_id,
        stored=stored,
        effective=_effective(resolved_preferences(prefs)),
        request_id=request_id or "",
    )


def _effective(resolved: SchedulingPreferences) -> EffectivePreferences:
    data = resolved.model_dump()
    return EffectivePreferences(
        **{key: _clock(value) if isinstance(value, time) else value for key, value in data.items()}
    )


def _clock(value: time) -> str:
    return value.strftime("%H:%M")
