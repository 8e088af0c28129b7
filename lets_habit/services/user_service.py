"""Helpers for working with users."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lets_habit.api.schemas.user import UserCreateRequest, UserUpdateRequest
from lets_habit.db.base import utcnow
from lets_habit.db.models.user import User
from lets_habit.services.membership import leave_all_habits

logger = logging.getLogger(__name__)


def require_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def register_user(db: Session, payload: UserCreateRequest) -> User:
    """Create a user; the email, when given, must not belong to anyone else."""
    try:
        if payload.email:
            _ensure_email_free(db, payload.email)
        user = User(name=payload.name, email=payload.email)
        db.add(user)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def update_user(db: Session, user_id: UUID, payload: UserUpdateRequest) -> User:
    try:
        user = require_user(db, user_id)
        if payload.name is not None:
            user.name = payload.name
        if payload.email is not None and payload.email != user.email:
            _ensure_email_free(db, payload.email, exclude=user.id)
            user.email = payload.email
        db.add(user)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(user)
    return user


def delete_user(db: Session, user_id: UUID, *, now: Optional[datetime] = None) -> None:
    """Leave every joined habit, then remove the account."""
    now = now or utcnow()
    try:
        user = require_user(db, user_id)
        deleted_habits = leave_all_habits(db, user.id, now)
        db.flush()
        db.delete(user)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    logger.info("Deleted user %s (habits removed with them: %d)", user_id, len(deleted_habits))


def _ensure_email_free(db: Session, email: str, exclude: Optional[UUID] = None) -> None:
    query = db.query(User.id).filter(User.email == email)
    if exclude is not None:
        query = query.filter(User.id != exclude)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
