"""Scheduling command log ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from timelit.db.base import Base
from timelit.db.types import JSONBCompat, UTCDateTime


class SchedulingActionLog(Base):
    """One committed scheduling operation plus what is needed to invert it."""

    __tablename__ = "scheduling_actions_log"
    __table_args__ = (Index("ix_scheduling_actions_log_user_id", "user_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action_type = Column(Text, nullable=False)
    action_payload = Column(JSONBCompat, nullable=False, default=dict)
    reason = Column(Text, nullable=True)
    undo_available = Column(Boolean, nullable=False, server_default=sa_text("false"), default=False)
    undone_at = Column(UTCDateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
