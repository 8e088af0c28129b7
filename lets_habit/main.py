"""Main FastAPI application for the Let's Habit backend."""
from fastapi import FastAPI, Request

from lets_habit.api.routes.habit_logs import router as habit_logs_router
from lets_habit.api.routes.habits import router as habits_router
from lets_habit.api.routes.jobs import router as jobs_router
from lets_habit.api.routes.users import router as users_router
from lets_habit.core.config import settings
from lets_habit.core.logging import configure_logging
from lets_habit.core.middleware import RequestIDMiddleware
from lets_habit.observability.client import init_opik
from lets_habit.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(users_router)
app.include_router(habits_router)
app.include_router(habit_logs_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup_observability() -> None:
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
