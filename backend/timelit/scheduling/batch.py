"""Schedule a whole backlog of tasks against one evolving snapshot."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional

from timelit.scheduling.engine import SchedulingEngine, coerce_events, coerce_task
from timelit.scheduling.models import (
    PRIORITY_RANK,
    CalendarEvent,
    SchedulingPreferences,
    SchedulingResult,
    SearchState,
    Task,
)
from timelit.scheduling.preferences import resolve_preferences

logger = logging.getLogger(__name__)


@dataclass
class BacklogEntry:
    task: Task
    result: SchedulingResult


@dataclass
class BacklogResult:
    entries: List[BacklogEntry] = field(default_factory=list)
    skipped: List[Task] = field(default_factory=list)

    @property
    def scheduled(self) -> List[BacklogEntry]:
        return [entry for entry in self.entries if entry.result.success]

    @property
    def failed(self) -> List[BacklogEntry]:
        return [entry for entry in self.entries if not entry.result.success]


def backlog_order(tasks: Iterable[Task]) -> List[Task]:
    """Urgent first, then earliest due date; input order breaks ties."""
    indexed = list(enumerate(tasks))
    indexed.sort(
        key=lambda pair: (
            -PRIORITY_RANK.get(pair[1].priority, 0),
            pair[1].due_date or date.max,
            pair[0],
        )
    )
    return [task for _, task in indexed]


def schedule_backlog(
    tasks: Iterable[Task | Mapping[str, Any]],
    preferences: SchedulingPreferences | Mapping[str, Any] | None,
    existing_events: Optional[Iterable[CalendarEvent | Mapping[str, Any]]],
    now: datetime,
    *,
    engine: Optional[SchedulingEngine] = None,
) -> BacklogResult:
    """
    Place each open task in turn, treating earlier placements as busy time.

    Tasks that fail validation are reported as INVALID entries; the rest of the
    backlog is still scheduled.
    """
    engine = engine or SchedulingEngine()
    prefs = resolve_preferences(preferences)
    snapshot: List[CalendarEvent] = list(coerce_events(existing_events))
    outcome = BacklogResult()

    valid: List[Task] = []
    for raw in tasks:
        try:
            task = coerce_task(raw)
        except ValueError as exc:
            logger.info("Skipping malformed backlog task: %s", exc)
            outcome.entries.append(
                BacklogEntry(
                    task=Task(id=_raw_id(raw)),
                    result=SchedulingResult.failed(f"Scheduling error: {exc}", state=SearchState.INVALID),
                )
            )
            continue
        if task.is_open:
            valid.append(task)
        else:
            outcome.skipped.append(task)

    for task in backlog_order(valid):
        result = engine.schedule(task, prefs, snapshot, now)
        outcome.entries.append(BacklogEntry(task=task, result=result))
        if result.success:
            snapshot.extend(
                CalendarEvent.model_validate(event.model_dump()) for event in result.new_events
            )

    logger.info(
        "Backlog scheduled: %d placed, %d failed, %d skipped",
        len(outcome.scheduled),
        len(outcome.failed),
        len(outcome.skipped),
    )
    return outcome


def _raw_id(raw: Any) -> Optional[str]:
    if isinstance(raw, Mapping) and raw.get("id") is not None:
        return str(raw["id"])
    return None
