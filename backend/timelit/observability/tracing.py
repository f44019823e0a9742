"""Opik traces around scheduling work; every helper degrades to a no-op without a client."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from timelit.core.context import get_correlation_id
from timelit.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def _clean(metadata: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in metadata.items() if value not in (None, "", [], {})}


def annotate(span: Optional["Trace"], base: Optional[Dict[str, Any]] = None, **fields: Any) -> None:
    """Merge ``fields`` into a live trace's metadata; Opik replaces metadata on update."""
    if not span:
        return
    try:
        span.update(metadata=_clean({**(base or {}), **fields}))
    except Exception as exc:  # pragma: no cover - tracing never fails a request
        logger.debug("Unable to annotate trace: %s", exc)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Open an Opik trace around a block of scheduling work.

    Yields None when Opik is disabled; pass the result to :func:`annotate`
    rather than calling ``update`` directly. Without an explicit ``request_id``
    the worker's job run id is used. Exceptions raised inside the block are
    attached to the trace and re-raised.
    """
    client = get_opik_client()
    opik_trace: Optional["Trace"] = None

    if client:
        trace_metadata = _clean(dict(metadata or {}))
        if user_id:
            trace_metadata.setdefault("user_id", str(user_id))
        correlation_id = request_id or get_correlation_id()
        if correlation_id:
            trace_metadata.setdefault("request_id", correlation_id)
        try:
            opik_trace = client.trace(name=name, metadata=trace_metadata or None)
        except Exception as exc:  # pragma: no cover - Opik outage
            logger.debug("Unable to start Opik trace %s: %s", name, exc)
            opik_trace = None

    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace:
            try:
                opik_trace.update(error_info={"message": str(exc)})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if opik_trace:
            try:
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)
