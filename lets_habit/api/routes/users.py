"""User registration and profile routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from lets_habit.api.schemas.user import UserCreateRequest, UserResponse, UserUpdateRequest
from lets_habit.db.deps import get_db
from lets_habit.db.models.user import User
from lets_habit.observability.metrics import timed
from lets_habit.observability.tracing import trace
from lets_habit.services import user_service

router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED, tags=["users"])
def register_user(
    payload: UserCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> UserResponse:
    """Register a user."""
    request_id = getattr(http_request.state, "request_id", None)
    with timed("user.register"), trace(
        "user.register",
        metadata={"route": "/users", "has_email": payload.email is not None},
        request_id=request_id,
    ):
        user = user_service.register_user(db, payload)

    return _serialize_user(user, request_id)


@router.get("/users/{user_id}", response_model=UserResponse, tags=["users"])
def get_user(user_id: UUID, http_request: Request, db: Session = Depends(get_db)) -> UserResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("user.get", metadata={"route": "/users/{user_id}"}, user_id=str(user_id), request_id=request_id):
        user = user_service.require_user(db, user_id)
    return _serialize_user(user, request_id)


@router.patch("/users/{user_id}", response_model=UserResponse, tags=["users"])
def update_user(
    user_id: UUID,
    payload: UserUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> UserResponse:
    """Change a user's name or email."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata = {
        "route": "/users/{user_id}",
        "name_changed": payload.name is not None,
        "email_changed": payload.email is not None,
    }
    with timed("user.update", metadata={"user_id": str(user_id)}), trace(
        "user.update", metadata=metadata, user_id=str(user_id), request_id=request_id
    ):
        user = user_service.update_user(db, user_id, payload)
    return _serialize_user(user, request_id)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["users"])
def delete_user(user_id: UUID, http_request: Request, db: Session = Depends(get_db)) -> Response:
    """Delete an account after leaving all of its habits."""
    request_id = getattr(http_request.state, "request_id", None)
    with timed("user.delete"), trace(
        "user.delete", metadata={"route": "/users/{user_id}"}, user_id=str(user_id), request_id=request_id
    ):
        user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _serialize_user(user: User, request_id: str | None) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
        request_id=request_id or "",
    )
