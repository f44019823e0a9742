"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from timelit.observability import tracing

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from timelit.scheduling.models import SchedulingResult

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record ``value`` as a ``metric:<name>`` trace when Opik is enabled."""
    client = tracing.get_opik_client()
    if not client:
        return

    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)

    try:
        metric_trace = client.trace(name=f"metric:{name}", metadata=payload)
        metric_trace.end()
    except Exception as exc:  # pragma: no cover - metrics never fail a request
        logger.debug("Unable to record metric %s: %s", name, exc)


def record_scheduling_result(
    operation: str,
    result: "SchedulingResult",
    latency_ms: float,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Emit the standard metric set for one engine run under ``scheduling.<operation>``.

    ``success`` is always written (1 or 0) so dashboards can compute a placement
    rate; ``score`` only exists for placed tasks.
    """
    tags: Dict[str, Any] = {"state": result.state.value, **(metadata or {})}
    prefix = f"scheduling.{operation}"
    log_metric(f"{prefix}.success", 1 if result.success else 0, metadata=tags)
    log_metric(f"{prefix}.latency_ms", latency_ms, metadata=tags)
    log_metric(f"{prefix}.days_searched", result.days_searched, metadata=tags)
    if result.success and result.score is not None:
        log_metric(f"{prefix}.score", result.score, metadata=tags)
