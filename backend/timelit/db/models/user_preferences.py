"""Per-user scheduling preferences ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from timelit.db.base import Base

# Columns handed verbatim to the preference resolver; NULL means "use the default".
RAW_PREFERENCE_FIELDS = (
    "schedule_mode",
    "work_start_time",
    "work_end_time",
    "school_start_time",
    "school_end_time",
    "lunch_break_enabled",
    "lunch_break_start",
    "lunch_break_duration",
    "short_break_duration",
    "long_break_duration",
    "break_frequency",
    "max_consecutive_work_hours",
    "weekend_work_enabled",
    "prefer_morning_tasks",
    "prefer_afternoon_tasks",
    "avoid_early_meetings",
    "avoid_late_meetings",
    "meeting_buffer_time",
    "energy_peak_hours_start",
    "energy_peak_hours_end",
    "default_event_category",
    "timezone",
)


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    auto_schedule_tasks_into_calendar = Column(
        Boolean, nullable=False, server_default=sa_text("false"), default=False
    )
    schedule_mode = Column(String(16), nullable=True)
    work_start_time = Column(String(5), nullable=True)
    work_end_time = Column(String(5), nullable=True)
    school_start_time = Column(String(5), nullable=True)
    school_end_time = Column(String(5), nullable=True)
    lunch_break_enabled = Column(Boolean, nullable=True)
    lunch_break_start = Column(String(5), nullable=True)
    lunch_break_duration = Column(Integer, nullable=True)
    short_break_duration = Column(Integer, nullable=True)
    long_break_duration = Column(Integer, nullable=True)
    break_frequency = Column(String(32), nullable=True)
    max_consecutive_work_hours = Column(Float, nullable=True)
    weekend_work_enabled = Column(Boolean, nullable=True)
    prefer_morning_tasks = Column(Boolean, nullable=True)
    prefer_afternoon_tasks = Column(Boolean, nullable=True)
    avoid_early_meetings = Column(Boolean, nullable=True)
    avoid_late_meetings = Column(Boolean, nullable=True)
    meeting_buffer_time = Column(Integer, nullable=True)
    energy_peak_hours_start = Column(String(5), nullable=True)
    energy_peak_hours_end = Column(String(5), nullable=True)
    default_event_category = Column(String(50), nullable=True)
    timezone = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def to_raw(self) -> dict:
        """Non-null preference columns keyed by their resolver field names."""
        return {
            name: getattr(self, name)
            for name in RAW_PREFERENCE_FIELDS
            if getattr(self, name) is not None
        }
