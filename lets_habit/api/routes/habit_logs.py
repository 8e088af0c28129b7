"""Habit check-in routes."""
from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from lets_habit.api.schemas.habit_log import HabitLogListResponse, HabitLogRequest, HabitLogResponse
from lets_habit.db.deps import get_db
from lets_habit.observability.metrics import log_metric, timed
from lets_habit.observability.tracing import trace
from lets_habit.services import habit_log_service

router = APIRouter()


@router.post(
    "/habits/{habit_id}/logs",
    response_model=HabitLogResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["habit-logs"],
)
def log_habit(
    habit_id: UUID,
    payload: HabitLogRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> HabitLogResponse:
    """Check in for the habit's current period."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata = {
        "route": "/habits/{habit_id}/logs",
        "habit_id": str(habit_id),
        "duration_min": payload.duration_min,
    }
    with timed("habit.log", metadata={"habit_id": str(habit_id)}), trace(
        "habit.log", metadata=metadata, user_id=str(payload.user_id), request_id=request_id
    ) as span:
        result = habit_log_service.log_habit(
            db,
            habit_id,
            payload.user_id,
            duration_min=payload.duration_min,
        )
        if span:
            span.update(metadata={**metadata, "confirmed": result.confirmed})

    log_metric("habit.log.confirmed", 1 if result.confirmed else 0, metadata={"habit_id": str(habit_id)})
    return HabitLogResponse(
        record=result.record,
        confirmed=result.confirmed,
        checked_in_user_ids=result.checked_in_user_ids,
        pending_user_ids=result.pending_user_ids,
        config=result.config,
        request_id=request_id or "",
    )


@router.delete("/habits/{habit_id}/logs/current", status_code=status.HTTP_204_NO_CONTENT, tags=["habit-logs"])
def withdraw_log(
    habit_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User withdrawing their check-in"),
    db: Session = Depends(get_db),
) -> Response:
    """Withdraw a check-in the group has not confirmed yet."""
    request_id = getattr(http_request.state, "request_id", None)
    with timed("habit.log.withdraw", metadata={"habit_id": str(habit_id)}), trace(
        "habit.log.withdraw",
        metadata={"habit_id": str(habit_id)},
        user_id=str(user_id),
        request_id=request_id,
    ):
        habit_log_service.withdraw_log(db, habit_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/habit-logs", response_model=HabitLogListResponse, tags=["habit-logs"])
def list_logs(
    http_request: Request,
    user_id: UUID = Query(..., description="User whose check-ins are listed"),
    habit_id: Optional[UUID] = Query(default=None),
    from_: Optional[date] = Query(default=None, alias="from"),
    to: Optional[date] = Query(default=None),
    include_unconfirmed: bool = Query(True),
    db: Session = Depends(get_db),
) -> HabitLogListResponse:
    """List check-ins by period, e.g. to draw a heatmap."""
    if from_ and to and from_ > to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'from' must not be after 'to'")

    request_id = getattr(http_request.state, "request_id", None)
    metadata = {
        "route": "/habit-logs",
        "habit_id": str(habit_id) if habit_id else None,
        "from": from_.isoformat() if from_ else None,
        "to": to.isoformat() if to else None,
    }
    with timed("habit.log.list", metadata={"user_id": str(user_id)}), trace(
        "habit.log.list", metadata=metadata, user_id=str(user_id), request_id=request_id
    ):
        items = habit_log_service.list_logs(
            db,
            user_id,
            habit_id=habit_id,
            from_=from_,
            to=to,
            include_unconfirmed=include_unconfirmed,
        )

    log_metric("habit.log.list.count", len(items), metadata={"user_id": str(user_id)})
    return HabitLogListResponse(user_id=user_id, items=items, request_id=request_id or "")
