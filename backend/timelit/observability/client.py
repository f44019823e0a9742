"""Process-wide Opik client shared by the API and the scheduler worker."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from timelit.core.config import settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

STATUS_ENABLED = "enabled"
STATUS_DISABLED = "disabled"
STATUS_UNAVAILABLE = "unavailable"

_client: Optional["Opik"] = None
_status: Optional[str] = None
_client_lock = Lock()


def init_opik() -> Optional["Opik"]:
    """Build the client once per process; later calls return the cached outcome."""
    global _client, _status

    with _client_lock:
        if _status is not None:
            return _client
        _client, _status = _build_client()
        return _client


def _build_client() -> tuple[Optional["Opik"], str]:
    if not settings.opik_enabled:
        logger.debug("Opik disabled; scheduler traces are no-ops.")
        return None, STATUS_DISABLED
    if Opik is None:
        logger.warning("OPIK_ENABLED is true but the opik package is not importable.")
        return None, STATUS_UNAVAILABLE
    if not settings.opik_api_key:
        logger.warning("OPIK_ENABLED is true but OPIK_API_KEY is missing; skipping Opik init.")
        return None, STATUS_UNAVAILABLE

    try:
        client = Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
    except Exception as exc:  # pragma: no cover - bad credentials or network
        logger.warning("Failed to initialize Opik, tracing will be disabled: %s", exc)
        return None, STATUS_UNAVAILABLE

    logger.info("Opik enabled (project=%s).", settings.opik_project)
    return client, STATUS_ENABLED


def get_opik_client() -> Optional["Opik"]:
    if _client is not None:
        return _client
    return init_opik()


def opik_status() -> str:
    """``enabled``, ``disabled`` (by config) or ``unavailable`` (configured but failed)."""
    init_opik()
    return _status or STATUS_DISABLED


def reset_opik_client() -> None:
    """Forget the cached client so the next call re-reads settings."""
    global _client, _status
    with _client_lock:
        _client = None
        _status = None
