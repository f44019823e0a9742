from timelit.db.base import Base
from timelit.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())
    expected = {
        "users",
        "tasks",
        "calendar_events",
        "user_preferences",
        "scheduling_actions_log",
    }

    assert expected.issubset(table_names)


def test_preference_columns_cover_resolver_fields() -> None:
    from timelit.db.models.user_preferences import RAW_PREFERENCE_FIELDS, UserPreferences

    columns = set(UserPreferences.__table__.columns.keys())

    assert set(RAW_PREFERENCE_FIELDS).issubset(columns)
    assert "auto_schedule_tasks_into_calendar" in columns


def test_utc_datetime_normalizes_offsets() -> None:
    from datetime import datetime, timedelta, timezone

    from sqlalchemy.dialects import postgresql, sqlite

    from timelit.db.types import UTCDateTime

    column_type = UTCDateTime()
    berlin = datetime(2025, 1, 6, 10, 0, tzinfo=timezone(timedelta(hours=1)))

    stored_pg = column_type.process_bind_param(berlin, postgresql.dialect())
    stored_sqlite = column_type.process_bind_param(berlin, sqlite.dialect())
    loaded = column_type.process_result_value(stored_sqlite, sqlite.dialect())

    assert stored_pg == datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)
    assert stored_sqlite.tzinfo is None
    assert loaded == berlin
    assert loaded.tzinfo == timezone.utc
