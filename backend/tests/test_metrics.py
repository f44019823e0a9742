"""Tests for metrics helpers."""
from __future__ import annotations

from typing import Any, Dict

from timelit.observability import metrics
from timelit.observability import tracing


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.ended = False

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


def test_log_metric_closes_trace(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    metrics.log_metric("scheduling.auto_schedule.latency_ms", 12.5, metadata={"task_id": "t-1"})

    recorded = dummy_client.traces[0]
    assert recorded.name == "metric:scheduling.auto_schedule.latency_ms"
    assert recorded.metadata == {"value": 12.5, "task_id": "t-1"}
    assert recorded.ended is True


def test_log_metric_is_noop_when_disabled(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    metrics.log_metric("scheduling.preview.success", 1)


def test_preview_route_emits_metrics(monkeypatch) -> None:
    from fastapi.testclient import TestClient

    from timelit.main import app

    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    response = TestClient(app).post(
        "/scheduling/preview",
        json={"task": {"title": "Plan"}, "now": "2025-01-06T07:00:00Z"},
    )

    assert response.status_code == 200
    names = [trace.name for trace in dummy_client.traces]
    assert "scheduling.preview" in names
    assert "metric:scheduling.preview.success" in names
    assert "metric:scheduling.preview.latency_ms" in names


def test_record_scheduling_result_emits_standard_set(monkeypatch) -> None:
    from datetime import datetime, timezone

    from timelit.scheduling import Task, schedule_task

    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)
    result = schedule_task(Task(title="Plan"), None, [], datetime(2025, 1, 6, 7, tzinfo=timezone.utc))

    metrics.record_scheduling_result("auto_schedule", result, 3.0, metadata={"priority": "medium"})

    by_name = {trace.name: trace.metadata for trace in dummy_client.traces}
    assert by_name["metric:scheduling.auto_schedule.success"]["value"] == 1
    assert by_name["metric:scheduling.auto_schedule.latency_ms"]["value"] == 3.0
    assert by_name["metric:scheduling.auto_schedule.days_searched"]["value"] == 1
    assert by_name["metric:scheduling.auto_schedule.score"]["value"] == result.score
    assert by_name["metric:scheduling.auto_schedule.success"]["state"] == "found"
    assert by_name["metric:scheduling.auto_schedule.success"]["priority"] == "medium"


def test_record_scheduling_result_skips_score_on_failure(monkeypatch) -> None:
    from timelit.scheduling import SchedulingResult, SearchState

    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    metrics.record_scheduling_result("preview", SchedulingResult.failed("no room", state=SearchState.EXHAUSTED), 1.0)

    names = [trace.name for trace in dummy_client.traces]
    assert "metric:scheduling.preview.score" not in names
    assert dummy_client.traces[0].metadata == {"value": 0, "state": "exhausted"}
