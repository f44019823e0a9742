"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from timelit.core.context import get_correlation_id


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the request or job run id ("-" when neither is bound)."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.correlation_id = get_correlation_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO") -> None:
    """Install the console handler once; later calls are ignored."""
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(correlation_id)s | %(message)s",
                }
            },
            "filters": {
                "correlation_id": {
                    "()": "timelit.core.logging.CorrelationIdFilter",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level,
                    "filters": ["correlation_id"],
                }
            },
            "loggers": {
                # Slot search logs every day it visits at DEBUG.
                "timelit.scheduling": {"level": log_level, "propagate": True},
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
    setattr(configure_logging, "_configured", True)
