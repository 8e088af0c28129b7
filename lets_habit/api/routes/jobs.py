"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from lets_habit.api.schemas.jobs import JobRunRequest, JobRunResponse
from lets_habit.core.config import settings
from lets_habit.db.deps import get_db
from lets_habit.observability.metrics import timed
from lets_habit.observability.tracing import trace
from lets_habit.services.job_runner import reconcile_all_habits

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "reconcile_time": f"{settings.reconcile_job_hour:02d}:{settings.reconcile_job_minute:02d}",
            },
            "day_timezone": settings.day_timezone,
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    habit_ids = [payload.habit_id] if payload.habit_id else None
    with timed("jobs.run_now", metadata={"job": payload.job}), trace(
        "jobs.run_now", metadata={"job": payload.job}, request_id=request_id
    ):
        result = reconcile_all_habits(db, habit_ids=habit_ids)

    return JobRunResponse(
        job=payload.job,
        habits_processed=result.habits_processed,
        stale_records_removed=result.stale_records_removed,
        streaks_reset=result.streaks_reset,
        request_id=request_id or "",
    )
