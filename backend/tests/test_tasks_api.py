from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timelit.db.deps import get_db
from timelit.db.models.calendar_event import CalendarEvent
from timelit.db.models.scheduling_action_log import SchedulingActionLog
from timelit.db.models.task import Task
from timelit.db.models.user import User
from timelit.db.models.user_preferences import UserPreferences
from timelit.main import app


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    CalendarEvent.__table__.create(bind=engine)
    UserPreferences.__table__.create(bind=engine)
    SchedulingActionLog.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def test_create_task_without_auto_schedule(client):
    test_client, _ = client
    user_id = uuid4()

    response = test_client.post(
        "/tasks",
        json={"user_id": str(user_id), "title": "  Review budget ", "priority": "high", "category": "finance"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["schedule"] is None
    assert data["request_id"] == response.headers["X-Request-Id"]
    task = data["task"]
    assert task["title"] == "Review budget"
    assert task["duration_min"] == 60
    assert task["status"] == "todo"
    assert task["scheduled_start_time"] is None
    assert task["auto_scheduled"] is False


def test_create_task_with_auto_schedule_flag(client):
    test_client, _ = client
    user_id = uuid4()

    response = test_client.post(
        "/tasks",
        json={"user_id": str(user_id), "title": "Gym", "duration_min": 45, "auto_schedule": True},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["schedule"]["success"] is True
    assert data["task"]["auto_scheduled"] is True
    assert data["task"]["scheduled_start_time"] is not None


def test_create_task_follows_preference_opt_in(client):
    test_client, _ = client
    user_id = uuid4()
    prefs = test_client.put(
        "/preferences",
        json={"user_id": str(user_id), "auto_schedule_tasks_into_calendar": True},
    )
    assert prefs.status_code == 200

    opted_in = test_client.post("/tasks", json={"user_id": str(user_id), "title": "Read paper"})
    assert opted_in.json()["schedule"]["success"] is True

    declined = test_client.post(
        "/tasks",
        json={"user_id": str(user_id), "title": "Someday", "auto_schedule": False},
    )
    assert declined.json()["schedule"] is None


def test_create_task_validation(client):
    test_client, _ = client
    user_id = uuid4()

    assert test_client.post("/tasks", json={"user_id": str(user_id), "title": ""}).status_code == 422
    assert test_client.post(
        "/tasks", json={"user_id": str(user_id), "title": "x", "priority": "critical"}
    ).status_code == 422
    assert test_client.post(
        "/tasks", json={"user_id": str(user_id), "title": "x", "duration_min": 0}
    ).status_code == 422


def test_list_and_update_status(client):
    test_client, _ = client
    user_id = uuid4()
    first = test_client.post("/tasks", json={"user_id": str(user_id), "title": "One"}).json()["task"]
    test_client.post("/tasks", json={"user_id": str(user_id), "title": "Two"})

    done = test_client.patch(
        f"/tasks/{first['id']}/status",
        json={"user_id": str(user_id), "status": "done"},
    )
    assert done.status_code == 200
    assert done.json()["status"] == "done"

    open_titles = [task["title"] for task in test_client.get("/tasks", params={"user_id": str(user_id)}).json()]
    closed_titles = [
        task["title"]
        for task in test_client.get("/tasks", params={"user_id": str(user_id), "status": "closed"}).json()
    ]
    all_titles = [
        task["title"] for task in test_client.get("/tasks", params={"user_id": str(user_id), "status": "all"}).json()
    ]
    assert open_titles == ["Two"]
    assert closed_titles == ["One"]
    assert sorted(all_titles) == ["One", "Two"]


def test_status_update_errors(client):
    test_client, _ = client
    user_id = uuid4()
    task = test_client.post("/tasks", json={"user_id": str(user_id), "title": "One"}).json()["task"]

    missing = test_client.patch(f"/tasks/{uuid4()}/status", json={"user_id": str(user_id), "status": "done"})
    foreign = test_client.patch(f"/tasks/{task['id']}/status", json={"user_id": str(uuid4()), "status": "done"})
    invalid = test_client.patch(f"/tasks/{task['id']}/status", json={"user_id": str(user_id), "status": "archived"})

    assert missing.status_code == 404
    assert foreign.status_code == 403
    assert invalid.status_code == 422


def test_list_tasks_rejects_unknown_status_filter(client):
    test_client, _ = client

    response = test_client.get("/tasks", params={"user_id": str(uuid4()), "status": "draft"})

    assert response.status_code == 422
