from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timelit.api.routes import scheduling as scheduling_routes
from timelit.db.deps import get_db
from timelit.db.models.calendar_event import CalendarEvent
from timelit.db.models.scheduling_action_log import SchedulingActionLog
from timelit.db.models.task import Task
from timelit.db.models.user import User
from timelit.db.models.user_preferences import UserPreferences
from timelit.main import app
from timelit.services.scheduling_service import SlotConflictError


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


def _create_task(test_client: TestClient, user_id: UUID, **fields) -> dict:
    body = {"user_id": str(user_id), "title": "Plan sprint", "duration_min": 60, **fields}
    response = test_client.post("/tasks", json=body)
    assert response.status_code == 201
    return response.json()["task"]


def test_preview_example_scenario(client):
    test_client, _ = client
    response = test_client.post(
        "/scheduling/preview",
        json={
            "task": {"id": "t1", "title": "Write report", "duration": 60, "priority": "medium"},
            "events": [
                {
                    "title": "Team sync",
                    "start_time": "2025-01-06T10:00:00Z",
                    "end_time": "2025-01-06T11:00:00Z",
                    "category": "meeting",
                }
            ],
            "preferences": {},
            "now": "2025-01-06T07:00:00Z",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["request_id"] == response.headers["X-Request-Id"]
    result = data["result"]
    assert result["success"] is True
    assert result["state"] == "found"
    starts = [datetime.fromisoformat(item["start_time"].replace("Z", "+00:00")) for item in result["new_events"]]
    assert starts == [
        datetime(2025, 1, 6, 13, 0, tzinfo=timezone.utc),
        datetime(2025, 1, 6, 14, 0, tzinfo=timezone.utc),
    ]
    assert result["new_events"][1]["title"] == "Break"


def test_preview_invalid_input_is_a_failed_result(client):
    test_client, _ = client
    response = test_client.post(
        "/scheduling/preview",
        json={"task": {"title": "x", "priority": "critical"}, "now": "2025-01-06T07:00:00Z"},
    )

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["success"] is False
    assert result["state"] == "invalid"
    assert result["reason"].startswith("Scheduling error:")


def test_preview_rejects_out_of_range_horizon(client):
    test_client, _ = client
    response = test_client.post(
        "/scheduling/preview",
        json={"task": {"title": "x"}, "now": "2025-01-06T07:00:00Z", "horizon_days": 30},
    )

    assert response.status_code == 422


def test_auto_schedule_endpoint_and_events_listing(client):
    test_client, _ = client
    user_id = uuid4()
    task = _create_task(test_client, user_id)

    response = test_client.post(f"/tasks/{task['id']}/auto-schedule", json={"user_id": str(user_id)})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["state"] == "found"
    assert data["events"]
    assert data["action_id"]
    assert data["request_id"] == response.headers["X-Request-Id"]

    now = datetime.now(timezone.utc)
    events = test_client.get(
        "/events",
        params={
            "user_id": str(user_id),
            "from": (now - timedelta(days=1)).isoformat(),
            "to": (now + timedelta(days=15)).isoformat(),
        },
    )
    assert events.status_code == 200
    items = events.json()["items"]
    assert {item["id"] for item in items} == {item["id"] for item in data["events"]}
    assert all(item["ai_suggested"] for item in items)


def test_auto_schedule_errors_map_to_status_codes(client, monkeypatch):
    test_client, _ = client
    user_id = uuid4()
    task = _create_task(test_client, user_id)

    missing = test_client.post(f"/tasks/{uuid4()}/auto-schedule", json={"user_id": str(user_id)})
    assert missing.status_code == 404

    foreign = test_client.post(f"/tasks/{task['id']}/auto-schedule", json={"user_id": str(uuid4())})
    assert foreign.status_code == 403

    def _conflict(*args, **kwargs):
        raise SlotConflictError("Chosen slot is no longer free")

    monkeypatch.setattr(scheduling_routes, "auto_schedule_task", _conflict)
    conflict = test_client.post(f"/tasks/{task['id']}/auto-schedule", json={"user_id": str(user_id)})
    assert conflict.status_code == 409


def test_actions_list_and_undo(client):
    test_client, _ = client
    user_id = uuid4()
    task = _create_task(test_client, user_id)
    scheduled = test_client.post(f"/tasks/{task['id']}/auto-schedule", json={"user_id": str(user_id)}).json()

    listing = test_client.get("/scheduling/actions", params={"user_id": str(user_id)})
    assert listing.status_code == 200
    items = listing.json()["items"]
    assert [item["action_type"] for item in items] == ["task_auto_scheduled"]
    assert items[0]["undo_available"] is True
    assert items[0]["summary"] == "Task auto-scheduled"

    undo = test_client.post(
        f"/scheduling/actions/{scheduled['action_id']}/undo",
        json={"user_id": str(user_id)},
    )
    assert undo.status_code == 200
    assert undo.json()["undone_at"]

    again = test_client.post(
        f"/scheduling/actions/{scheduled['action_id']}/undo",
        json={"user_id": str(user_id)},
    )
    assert again.status_code == 409

    tasks = test_client.get("/tasks", params={"user_id": str(user_id)}).json()
    assert tasks[0]["scheduled_start_time"] is None


def test_undo_unknown_or_foreign_action(client):
    test_client, _ = client
    user_id = uuid4()
    task = _create_task(test_client, user_id)
    scheduled = test_client.post(f"/tasks/{task['id']}/auto-schedule", json={"user_id": str(user_id)}).json()

    assert test_client.post(
        f"/scheduling/actions/{uuid4()}/undo", json={"user_id": str(user_id)}
    ).status_code == 404
    assert test_client.post(
        f"/scheduling/actions/{scheduled['action_id']}/undo", json={"user_id": str(uuid4())}
    ).status_code == 403


def test_regenerate_endpoint(client):
    test_client, _ = client
    user_id = uuid4()
    _create_task(test_client, user_id, title="One", priority="high")
    _create_task(test_client, user_id, title="Two", duration_min=30)

    response = test_client.post("/scheduling/regenerate", json={"user_id": str(user_id)})

    assert response.status_code == 200
    data = response.json()
    assert data["scheduled"] == 2
    assert data["failed"] == 0
    assert data["removed_events"] == 0

    tasks = test_client.get("/tasks", params={"user_id": str(user_id)}).json()
    assert all(task["auto_scheduled"] for task in tasks)

    actions = test_client.get("/scheduling/actions", params={"user_id": str(user_id)}).json()["items"]
    assert actions[0]["action_type"] == "schedule_regenerated"
    assert actions[0]["summary"].startswith("Schedule regenerated")


def test_events_rejects_inverted_window(client):
    test_client, _ = client
    response = test_client.get(
        "/events",
        params={
            "user_id": str(uuid4()),
            "from": "2025-01-07T00:00:00+00:00",
            "to": "2025-01-06T00:00:00+00:00",
        },
    )

    assert response.status_code == 400


def test_available_slots_lists_ranked_options(client):
    test_client, _ = client
    response = test_client.post(
        "/scheduling/available-slots",
        json={
            "task": {"title": "Write report", "duration": 60},
            "events": [],
            "now": "2025-01-06T07:00:00Z",
            "count": 3,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["request_id"] == response.headers["X-Request-Id"]
    assert 1 <= data["count"] <= 3
    assert data["count"] == len(data["items"])
    first = data["items"][0]
    assert datetime.fromisoformat(first["start_time"].replace("Z", "+00:00")) == datetime(
        2025, 1, 6, 9, 0, tzinfo=timezone.utc
    )
    assert first["breakdown"]
    scores = [item["score"] for item in data["items"]]
    assert scores == sorted(scores, reverse=True)


def test_available_slots_rejects_invalid_task(client):
    test_client, _ = client

    invalid = test_client.post(
        "/scheduling/available-slots",
        json={"task": {"title": "x", "priority": "critical"}, "now": "2025-01-06T07:00:00Z"},
    )
    too_many = test_client.post(
        "/scheduling/available-slots",
        json={"task": {"title": "x"}, "now": "2025-01-06T07:00:00Z", "count": 500},
    )

    assert invalid.status_code == 422
    assert invalid.json()["detail"].startswith("Scheduling error:")
    assert too_many.status_code == 422


def test_regenerate_unknown_user_is_404(client):
    test_client, session_factory = client

    response = test_client.post("/scheduling/regenerate", json={"user_id": str(uuid4())})

    assert response.status_code == 404
    session = session_factory()
    try:
        assert session.query(SchedulingActionLog).count() == 0
    finally:
        session.close()
