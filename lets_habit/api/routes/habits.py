"""Habit and habit group routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from lets_habit.api.schemas.habit import (
    CooperatorsAddRequest,
    DetailedHabit,
    DetailedHabitResponse,
    HabitConfigResponse,
    HabitConfigUpdateRequest,
    HabitCreateRequest,
    HabitLeaveResponse,
    HabitListResponse,
    HabitUpdateRequest,
    MembershipRequest,
)
from lets_habit.db.deps import get_db
from lets_habit.observability.metrics import log_metric, timed
from lets_habit.observability.tracing import trace
from lets_habit.services import habit_service

router = APIRouter()


@router.post("/habits", response_model=DetailedHabitResponse, status_code=status.HTTP_201_CREATED, tags=["habits"])
def create_habit(
    payload: HabitCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DetailedHabitResponse:
    """Create a habit and its cooperator group."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata = {
        "route": "/habits",
        "check_frequency": payload.check_frequency,
        "check_type": payload.check_type,
        "cooperators": len(payload.cooperators),
    }
    with timed("habit.create", metadata={"user_id": str(payload.user_id)}), trace(
        "habit.create", metadata=metadata, user_id=str(payload.user_id), request_id=request_id
    ):
        detailed = habit_service.create_habit(db, payload)

    return _with_request_id(detailed, request_id)


@router.get("/habits", response_model=HabitListResponse, tags=["habits"])
def list_habits(
    http_request: Request,
    user_id: UUID = Query(..., description="User whose joined habits are listed"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> HabitListResponse:
    """List the habits a user joined with streaks and today's check-in state."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata = {"route": "/habits", "page": page, "page_size": page_size}
    with timed("habit.list", metadata={"user_id": str(user_id)}), trace(
        "habit.list", metadata=metadata, user_id=str(user_id), request_id=request_id
    ):
        habits, total = habit_service.list_user_habits(db, user_id, page=page, page_size=page_size)

    log_metric("habit.list.count", len(habits), metadata={"user_id": str(user_id)})
    return HabitListResponse(
        habits=habits,
        total=total,
        page=page,
        page_size=page_size,
        request_id=request_id or "",
    )


@router.get("/habits/{habit_id}", response_model=DetailedHabitResponse, tags=["habits"])
def get_habit(
    habit_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User viewing the habit"),
    db: Session = Depends(get_db),
) -> DetailedHabitResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "habit.get",
        metadata={"route": "/habits/{habit_id}", "habit_id": str(habit_id)},
        user_id=str(user_id),
        request_id=request_id,
    ):
        detailed = habit_service.get_habit(db, habit_id, user_id)
    return _with_request_id(detailed, request_id)


@router.patch("/habits/{habit_id}", response_model=DetailedHabitResponse, tags=["habits"])
def update_habit(
    habit_id: UUID,
    payload: HabitUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DetailedHabitResponse:
    """Edit name, visibility, schedule or deadline delay (creator only)."""
    request_id = getattr(http_request.state, "request_id", None)
    changed = sorted(payload.model_dump(exclude={"user_id"}, exclude_none=True))
    with timed("habit.update", metadata={"habit_id": str(habit_id)}), trace(
        "habit.update",
        metadata={"route": "/habits/{habit_id}", "habit_id": str(habit_id), "fields": changed},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        detailed = habit_service.update_habit(db, habit_id, payload)
    return _with_request_id(detailed, request_id)


@router.delete("/habits/{habit_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["habits"])
def delete_habit(
    habit_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="Creator deleting the habit"),
    db: Session = Depends(get_db),
) -> Response:
    request_id = getattr(http_request.state, "request_id", None)
    with timed("habit.delete", metadata={"habit_id": str(habit_id)}), trace(
        "habit.delete",
        metadata={"route": "/habits/{habit_id}", "habit_id": str(habit_id)},
        user_id=str(user_id),
        request_id=request_id,
    ):
        habit_service.delete_habit(db, habit_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/habits/{habit_id}/cooperators", response_model=DetailedHabitResponse, tags=["habits"])
def add_cooperators(
    habit_id: UUID,
    payload: CooperatorsAddRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DetailedHabitResponse:
    """Creator adds users to the habit group."""
    request_id = getattr(http_request.state, "request_id", None)
    with timed("habit.cooperators.add", metadata={"habit_id": str(habit_id)}), trace(
        "habit.cooperators.add",
        metadata={"habit_id": str(habit_id), "requested": len(payload.cooperator_ids)},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        detailed = habit_service.add_cooperators(db, habit_id, payload.user_id, payload.cooperator_ids)
    return _with_request_id(detailed, request_id)


@router.post("/habits/{habit_id}/join", response_model=DetailedHabitResponse, tags=["habits"])
def join_habit(
    habit_id: UUID,
    payload: MembershipRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DetailedHabitResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with timed("habit.join", metadata={"habit_id": str(habit_id)}), trace(
        "habit.join",
        metadata={"habit_id": str(habit_id)},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        detailed = habit_service.join_habit(db, habit_id, payload.user_id)
    return _with_request_id(detailed, request_id)


@router.post("/habits/{habit_id}/leave", response_model=HabitLeaveResponse, tags=["habits"])
def leave_habit(
    habit_id: UUID,
    payload: MembershipRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> HabitLeaveResponse:
    """Leave a habit group; the habit is deleted when its last cooperator leaves."""
    request_id = getattr(http_request.state, "request_id", None)
    with timed("habit.leave", metadata={"habit_id": str(habit_id)}), trace(
        "habit.leave",
        metadata={"habit_id": str(habit_id)},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        deleted = habit_service.leave_habit(db, habit_id, payload.user_id)

    return HabitLeaveResponse(habit_id=habit_id, habit_deleted=deleted, request_id=request_id or "")


@router.patch("/habits/{habit_id}/config", response_model=HabitConfigResponse, tags=["habits"])
def update_habit_config(
    habit_id: UUID,
    payload: HabitConfigUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> HabitConfigResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "habit.config.update",
        metadata={"habit_id": str(habit_id)},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        config = habit_service.update_habit_config(db, habit_id, payload.user_id, payload.heatmap_color)

    return HabitConfigResponse(
        habit_id=habit_id,
        user_id=payload.user_id,
        config=config,
        request_id=request_id or "",
    )


def _with_request_id(detailed: DetailedHabit, request_id: str | None) -> DetailedHabitResponse:
    return DetailedHabitResponse(**detailed.model_dump(), request_id=request_id or "")
