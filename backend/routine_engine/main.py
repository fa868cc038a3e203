"""Main FastAPI application for the routine engine backend."""
from fastapi import FastAPI, Request

from routine_engine.api.routes.communication_plan import router as communication_plan_router
from routine_engine.api.routes.routines import router as routines_router
from routine_engine.core.config import settings
from routine_engine.core.logging import configure_logging
from routine_engine.core.middleware import RequestIDMiddleware
from routine_engine.observability.client import init_opik
from routine_engine.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(communication_plan_router)
app.include_router(routines_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
