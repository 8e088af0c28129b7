"""Habit creation, membership and the detailed views returned by the API."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import asc, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lets_habit.api.schemas.habit import (
    DetailedHabit,
    HabitConfigPayload,
    HabitCreateRequest,
    HabitPayload,
    HabitUpdateRequest,
)
from lets_habit.api.schemas.user import UserSummary
from lets_habit.core.config import settings
from lets_habit.db.base import utcnow
from lets_habit.db.models.habit import ALL_WEEKDAYS_MASK, Habit
from lets_habit.db.models.habit_group import HabitGroup
from lets_habit.db.models.user import User
from lets_habit.db.models.user_habit_config import UserHabitConfig
from lets_habit.services.habit_log_service import (
    cooperator_ids,
    current_period,
    lock_habit,
    period_status,
    reconcile_habit,
    serialize_config,
)
from lets_habit.services.membership import delete_habit_rows, remove_member
from lets_habit.services.periods import DAILY, mask_to_weekdays, weekdays_to_mask
from lets_habit.services.user_service import require_user

logger = logging.getLogger(__name__)


def create_habit(db: Session, payload: HabitCreateRequest, *, now: Optional[datetime] = None) -> DetailedHabit:
    """Create a habit whose group is the creator plus the listed cooperators."""
    now = now or utcnow()
    member_ids = list(dict.fromkeys([payload.user_id, *payload.cooperators]))
    try:
        require_user(db, payload.user_id)
        _ensure_users_exist(db, member_ids)
        _ensure_group_size(len(member_ids))

        habit = Habit(
            creator_id=payload.user_id,
            name=payload.name,
            public_level=payload.public_level,
            check_type=payload.check_type,
            check_frequency=payload.check_frequency,
            check_days=_check_days_mask(payload.check_frequency, payload.check_days),
            check_deadline_delay=payload.check_deadline_delay,
        )
        db.add(habit)
        db.flush()
        _add_members(db, habit, member_ids)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save habit",
        ) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(habit)
    logger.info("Habit %s created by %s with %d cooperators", habit.id, payload.user_id, len(member_ids))
    return build_detailed_habits(db, [habit], payload.user_id, now)[0]


def get_habit(db: Session, habit_id: UUID, user_id: UUID, *, now: Optional[datetime] = None) -> DetailedHabit:
    """Return one habit; private habits are visible to their cooperators only."""
    now = now or utcnow()
    habit = require_habit(db, habit_id)
    if habit.public_level == "private" and user_id not in cooperator_ids(db, habit.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Habit is private")

    _reconcile_and_commit(db, [habit], now)
    return build_detailed_habits(db, [habit], user_id, now)[0]


def list_user_habits(
    db: Session,
    user_id: UUID,
    *,
    page: int = 1,
    page_size: int = 20,
    now: Optional[datetime] = None,
) -> Tuple[List[DetailedHabit], int]:
    """Page through the habits a user joined, newest membership first."""
    now = now or utcnow()
    require_user(db, user_id)

    query = (
        db.query(Habit)
        .join(HabitGroup, HabitGroup.habit_id == Habit.id)
        .filter(HabitGroup.user_id == user_id)
    )
    total = query.count()
    habits = (
        query.order_by(desc(HabitGroup.joined_at), asc(Habit.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    _reconcile_and_commit(db, habits, now)
    return build_detailed_habits(db, habits, user_id, now), total


def update_habit(
    db: Session,
    habit_id: UUID,
    payload: HabitUpdateRequest,
    *,
    now: Optional[datetime] = None,
) -> DetailedHabit:
    now = now or utcnow()
    try:
        habit = require_habit(db, habit_id)
        _ensure_creator(habit, payload.user_id)

        if payload.name is not None:
            habit.name = payload.name
        if payload.public_level is not None:
            habit.public_level = payload.public_level
        if payload.check_days is not None:
            habit.check_days = _check_days_mask(habit.check_frequency, payload.check_days)
        if payload.check_deadline_delay is not None:
            habit.check_deadline_delay = payload.check_deadline_delay
        db.add(habit)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(habit)
    return build_detailed_habits(db, [habit], payload.user_id, now)[0]


def delete_habit(db: Session, habit_id: UUID, user_id: UUID) -> None:
    """Delete a habit; only its creator may do so."""
    try:
        habit = require_habit(db, habit_id)
        _ensure_creator(habit, user_id)
        delete_habit_rows(db, habit)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    logger.info("Habit %s deleted by %s", habit_id, user_id)


def add_cooperators(
    db: Session,
    habit_id: UUID,
    user_id: UUID,
    new_ids: Sequence[UUID],
    *,
    now: Optional[datetime] = None,
) -> DetailedHabit:
    """Creator adds users to the group; existing members are skipped."""
    now = now or utcnow()
    try:
        habit = require_habit(db, habit_id)
        _ensure_creator(habit, user_id)

        members = cooperator_ids(db, habit.id)
        to_add = [uid for uid in dict.fromkeys(new_ids) if uid not in members]
        _ensure_users_exist(db, to_add)
        _ensure_group_size(len(members) + len(to_add))
        _add_members(db, habit, to_add)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    return build_detailed_habits(db, [habit], user_id, now)[0]


def join_habit(db: Session, habit_id: UUID, user_id: UUID, *, now: Optional[datetime] = None) -> DetailedHabit:
    """Join a public habit's group."""
    now = now or utcnow()
    try:
        habit = require_habit(db, habit_id)
        require_user(db, user_id)
        if habit.public_level != "public":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Habit is private")

        members = cooperator_ids(db, habit.id)
        if user_id in members:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already joined this habit")
        _ensure_group_size(len(members) + 1)
        _add_members(db, habit, [user_id])
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already joined this habit") from exc
    except Exception:
        db.rollback()
        raise

    return build_detailed_habits(db, [habit], user_id, now)[0]


def leave_habit(db: Session, habit_id: UUID, user_id: UUID, *, now: Optional[datetime] = None) -> bool:
    """Leave a habit; return True when the habit was deleted because nobody is left."""
    now = now or utcnow()
    try:
        habit = lock_habit(db, habit_id)
        if user_id not in cooperator_ids(db, habit.id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User is not a cooperator of this habit")
        deleted = remove_member(db, habit, user_id, now)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    return deleted


def update_habit_config(
    db: Session,
    habit_id: UUID,
    user_id: UUID,
    heatmap_color: str,
    *,
    now: Optional[datetime] = None,
) -> HabitConfigPayload:
    now = now or utcnow()
    try:
        habit = require_habit(db, habit_id)
        config = db.get(UserHabitConfig, (user_id, habit.id))
        if not config:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not a cooperator of this habit")
        config.heatmap_color = heatmap_color
        db.add(config)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise

    _, period = current_period(habit, now)
    return serialize_config(config, habit, period)


def require_habit(db: Session, habit_id: UUID) -> Habit:
    habit = db.get(Habit, habit_id)
    if not habit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Habit not found")
    return habit


def build_detailed_habits(
    db: Session,
    habits: Sequence[Habit],
    viewer_id: UUID,
    now: datetime,
) -> List[DetailedHabit]:
    """Assemble habit, cooperators, viewer config and period status for each habit."""
    if not habits:
        return []

    habit_ids = [habit.id for habit in habits]
    groups = (
        db.query(HabitGroup)
        .filter(HabitGroup.habit_id.in_(habit_ids))
        .order_by(asc(HabitGroup.joined_at), asc(HabitGroup.user_id))
        .all()
    )
    members_by_habit: Dict[UUID, List[UUID]] = defaultdict(list)
    for group in groups:
        members_by_habit[group.habit_id].append(group.user_id)

    member_ids = {group.user_id for group in groups}
    users: Dict[UUID, User] = {}
    if member_ids:
        users = {user.id: user for user in db.query(User).filter(User.id.in_(member_ids)).all()}

    configs = {
        config.habit_id: config
        for config in db.query(UserHabitConfig)
        .filter(UserHabitConfig.user_id == viewer_id, UserHabitConfig.habit_id.in_(habit_ids))
        .all()
    }

    entries: List[DetailedHabit] = []
    for habit in habits:
        day, period = current_period(habit, now)
        config = configs.get(habit.id)
        # Creator first, then by join time.
        member_order = sorted(members_by_habit.get(habit.id, []), key=lambda uid: uid != habit.creator_id)
        entries.append(
            DetailedHabit(
                habit=serialize_habit(habit),
                cooperators=[
                    UserSummary(id=uid, name=users[uid].name)
                    for uid in member_order
                    if uid in users
                ],
                config=serialize_config(config, habit, period) if config else None,
                current_period=period_status(db, habit, viewer_id, day, period),
            )
        )
    return entries


def serialize_habit(habit: Habit) -> HabitPayload:
    return HabitPayload(
        id=habit.id,
        creator_id=habit.creator_id,
        name=habit.name,
        public_level=habit.public_level,
        check_type=habit.check_type,
        check_frequency=habit.check_frequency,
        check_days=mask_to_weekdays(habit.check_days),
        check_deadline_delay=habit.check_deadline_delay,
        created_at=habit.created_at,
        updated_at=habit.updated_at,
    )


def _reconcile_and_commit(db: Session, habits: Iterable[Habit], now: datetime) -> None:
    try:
        for habit in habits:
            _, period = current_period(habit, now)
            reconcile_habit(db, habit, period)
        db.commit()
    except Exception:
        db.rollback()
        raise


def _add_members(db: Session, habit: Habit, user_ids: Iterable[UUID]) -> None:
    for uid in user_ids:
        db.add(HabitGroup(habit_id=habit.id, user_id=uid))
        db.add(
            UserHabitConfig(
                user_id=uid,
                habit_id=habit.id,
                current_streak=0,
                longest_streak=0,
                heatmap_color=settings.default_heatmap_color,
            )
        )
    db.flush()


def _ensure_users_exist(db: Session, user_ids: Sequence[UUID]) -> None:
    if not user_ids:
        return
    found = {row[0] for row in db.query(User.id).filter(User.id.in_(list(user_ids))).all()}
    if len(found) != len(set(user_ids)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="has non-existent user id")


def _ensure_group_size(size: int) -> None:
    if size > settings.habit_group_max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A habit group holds at most {settings.habit_group_max_size} cooperators",
        )


def _ensure_creator(habit: Habit, user_id: UUID) -> None:
    if habit.creator_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the habit creator can do this")


def _check_days_mask(frequency: str, weekdays: Sequence[int]) -> int:
    if frequency != DAILY:
        return ALL_WEEKDAYS_MASK
    return weekdays_to_mask(weekdays)
