"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from timelit.db.base import Base
from timelit.db.types import UTCDateTime


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_status", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    duration_min = Column(Integer, nullable=False, server_default=sa_text("60"), default=60)
    priority = Column(String(16), nullable=False, server_default=sa_text("'medium'"), default="medium")
    category = Column(String(50), nullable=True)
    due_date = Column(Date, nullable=True)
    status = Column(String(16), nullable=False, server_default=sa_text("'todo'"), default="todo")
    scheduled_start_time = Column(UTCDateTime, nullable=True)
    scheduled_end_time = Column(UTCDateTime, nullable=True)
    scheduled_date = Column(Date, nullable=True)
    auto_scheduled = Column(Boolean, nullable=False, server_default=sa_text("false"), default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
