"""User lookup and row ownership checks."""
from __future__ import annotations

from typing import Optional, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timelit.db.models.user import User

OwnedRow = TypeVar("OwnedRow")


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Fetch the user row, creating it on first contact (tasks and preferences arrive before any signup)."""
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        # Another request created the same user between get and flush.
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise


def require_owned(row: Optional[OwnedRow], user_id: UUID, label: str) -> OwnedRow:
    """
    Return ``row`` when it exists and belongs to ``user_id``.

    Raises ValueError for a missing row and PermissionError for someone
    else's; routes map these to 404 and 403.
    """
    if row is None:
        raise ValueError(f"{label} not found")
    if getattr(row, "user_id") != user_id:
        raise PermissionError(f"{label} does not belong to user")
    return row
