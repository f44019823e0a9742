"""Main FastAPI application for the Timelit scheduler backend."""
from fastapi import FastAPI, Request

from timelit.api.routes.events import router as events_router
from timelit.api.routes.preferences import router as preferences_router
from timelit.api.routes.scheduling import router as scheduling_router
from timelit.api.routes.task import router as task_router
from timelit.core.config import settings
from timelit.core.logging import configure_logging
from timelit.core.middleware import RequestIDMiddleware
from timelit.observability.client import init_opik, opik_status
from timelit.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(task_router)
app.include_router(scheduling_router)
app.include_router(events_router)
app.include_router(preferences_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    """Readiness plus whether scheduler traces are being exported."""
    request_id = getattr(request.state, "request_id", None)
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request_id):
        return {"status": "ok", "tracing": opik_status(), "request_id": request_id or ""}
