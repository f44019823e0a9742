"""ORM models exposed for metadata discovery."""
from timelit.db.models.calendar_event import CalendarEvent
from timelit.db.models.scheduling_action_log import SchedulingActionLog
from timelit.db.models.task import Task
from timelit.db.models.user import User
from timelit.db.models.user_preferences import UserPreferences

__all__ = [
    "CalendarEvent",
    "SchedulingActionLog",
    "Task",
    "User",
    "UserPreferences",
]
