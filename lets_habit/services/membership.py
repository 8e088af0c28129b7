"""Removing users from habit groups.

Shared by *leave habit* and account deletion. Nothing here commits; callers
own the transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.orm import Session

from lets_habit.db.models.habit import Habit
from lets_habit.db.models.habit_group import HabitGroup
from lets_habit.db.models.habit_log_record import HabitLogRecord, UnconfirmedHabitLogRecord
from lets_habit.db.models.user_habit_config import UserHabitConfig
from lets_habit.services.habit_log_service import confirm_period_if_complete, current_period, lock_habit

logger = logging.getLogger(__name__)


def delete_habit_rows(db: Session, habit: Habit) -> None:
    """Delete a habit together with its group, configs and log records."""
    for model in (UnconfirmedHabitLogRecord, HabitLogRecord, UserHabitConfig, HabitGroup):
        db.query(model).filter(model.habit_id == habit.id).delete(synchronize_session=False)
    db.delete(habit)
    db.flush()


def remove_member(db: Session, habit: Habit, user_id: UUID, now: datetime) -> bool:
    """Take ``user_id`` out of ``habit``; return True when the habit was deleted.

    The last member leaving deletes the habit. A leaving creator hands the habit
    to the earliest-joined remaining member. Remaining members may now all have
    checked in, so the current period is re-evaluated.
    """
    for model in (UnconfirmedHabitLogRecord, HabitLogRecord, UserHabitConfig, HabitGroup):
        db.query(model).filter(model.habit_id == habit.id, model.user_id == user_id).delete(
            synchronize_session=False
        )
    db.flush()

    remaining = (
        db.query(HabitGroup)
        .filter(HabitGroup.habit_id == habit.id)
        .order_by(asc(HabitGroup.joined_at), asc(HabitGroup.user_id))
        .all()
    )
    if not remaining:
        logger.info("Last cooperator %s left habit %s; deleting it", user_id, habit.id)
        delete_habit_rows(db, habit)
        return True

    if habit.creator_id == user_id:
        habit.creator_id = remaining[0].user_id
        logger.info("Habit %s handed over from %s to %s", habit.id, user_id, habit.creator_id)

    _, period = current_period(habit, now)
    confirm_period_if_complete(db, habit, period, {member.user_id for member in remaining}, now)
    return False


def leave_all_habits(db: Session, user_id: UUID, now: datetime) -> List[UUID]:
    """Remove the user from every habit they joined; return the ids of deleted habits."""
    habit_ids = [
        row[0]
        for row in db.query(HabitGroup.habit_id)
        .filter(HabitGroup.user_id == user_id)
        .order_by(asc(HabitGroup.habit_id))
        .all()
    ]
    deleted: List[UUID] = []
    # Fixed id order so concurrent callers take habit locks in the same sequence.
    for habit_id in habit_ids:
        habit = lock_habit(db, habit_id)
        if remove_member(db, habit, user_id, now):
            deleted.append(habit_id)
    return deleted
