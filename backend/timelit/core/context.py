"""Correlation ids for log lines: one per HTTP request or per worker job run."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
from uuid import uuid4

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
job_run_ctx_var: ContextVar[str | None] = ContextVar("job_run_id", default=None)


@contextmanager
def bind_request_id(request_id: str) -> Iterator[str]:
    token = request_id_ctx_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_ctx_var.reset(token)


@contextmanager
def bind_job_run(job_name: str, run_id: Optional[str] = None) -> Iterator[str]:
    """Tag everything logged inside the block with ``<job_name>:<run id>``."""
    value = f"{job_name}:{run_id or uuid4().hex[:12]}"
    token = job_run_ctx_var.set(value)
    try:
        yield value
    finally:
        job_run_ctx_var.reset(token)


def get_request_id() -> str | None:
    return request_id_ctx_var.get()


def get_correlation_id() -> str | None:
    """Request id when serving HTTP, job run id inside the worker, else None."""
    return request_id_ctx_var.get() or job_run_ctx_var.get()
