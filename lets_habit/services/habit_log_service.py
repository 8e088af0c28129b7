"""Check-ins, group confirmation and streak reconciliation.

A check-in is stored as an unconfirmed record for the current period. When
every cooperator of the habit has checked in for that period, all of the
period's unconfirmed records are promoted to confirmed records in one step and
each cooperator's streak advances. Unconfirmed records left over from earlier
periods mean the group missed that period; reconciliation drops them and zeroes
streaks that can no longer continue.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lets_habit.api.schemas.habit import HabitConfigPayload, PeriodStatus
from lets_habit.api.schemas.habit_log import HabitLogRecordPayload
from lets_habit.db.base import utcnow
from lets_habit.db.models.habit import Habit
from lets_habit.db.models.habit_group import HabitGroup
from lets_habit.db.models.habit_log_record import HabitLogRecord, UnconfirmedHabitLogRecord
from lets_habit.db.models.user_habit_config import UserHabitConfig
from lets_habit.services.periods import (
    day_timezone,
    is_scheduled,
    is_streak_alive,
    logical_day,
    next_streak,
    period_start,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    stale_removed: int = 0
    streaks_reset: int = 0


@dataclass
class LogResult:
    record: HabitLogRecordPayload
    confirmed: bool
    checked_in_user_ids: List[UUID] = field(default_factory=list)
    pending_user_ids: List[UUID] = field(default_factory=list)
    config: Optional[HabitConfigPayload] = None


def lock_habit(db: Session, habit_id: UUID) -> Habit:
    """Load the habit row with FOR UPDATE; every change to group state goes through here."""
    habit = db.query(Habit).filter(Habit.id == habit_id).with_for_update().one_or_none()
    if not habit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Habit not found")
    return habit


def current_period(habit: Habit, now: datetime) -> Tuple[date, date]:
    """Return ``(logical_day, period_start)`` for ``habit`` at ``now``."""
    day = logical_day(now, day_timezone(), habit.check_deadline_delay or 0)
    return day, period_start(day, habit.check_frequency)


def cooperator_ids(db: Session, habit_id: UUID) -> Set[UUID]:
    rows = db.query(HabitGroup.user_id).filter(HabitGroup.habit_id == habit_id).all()
    return {row[0] for row in rows}


def reconcile_habit(db: Session, habit: Habit, period: date) -> ReconcileResult:
    """Drop unconfirmed records older than ``period`` and zero broken streaks.

    Runs inside the caller's transaction and is safe to repeat.
    """
    stale_removed = (
        db.query(UnconfirmedHabitLogRecord)
        .filter(
            UnconfirmedHabitLogRecord.habit_id == habit.id,
            UnconfirmedHabitLogRecord.period_start < period,
        )
        .delete(synchronize_session=False)
    )

    streaks_reset = 0
    configs = db.query(UserHabitConfig).filter(UserHabitConfig.habit_id == habit.id).all()
    for config in configs:
        if not config.current_streak:
            continue
        if is_streak_alive(config.last_completed_period, period, habit.check_frequency, habit.check_days):
            continue
        config.current_streak = 0
        streaks_reset += 1

    if stale_removed or streaks_reset:
        logger.info(
            "Reconciled habit %s at %s: removed %d stale check-ins, reset %d streaks",
            habit.id,
            period.isoformat(),
            stale_removed,
            streaks_reset,
        )
    return ReconcileResult(stale_removed=stale_removed, streaks_reset=streaks_reset)


def confirm_period_if_complete(
    db: Session,
    habit: Habit,
    period: date,
    members: Set[UUID],
    now: datetime,
) -> Dict[UUID, HabitLogRecord]:
    """Promote the period's check-ins once every member has one.

    Returns the promoted records keyed by user id, or an empty dict when some
    cooperator is still pending.
    """
    if not members:
        return {}

    pending_records = (
        db.query(UnconfirmedHabitLogRecord)
        .filter(
            UnconfirmedHabitLogRecord.habit_id == habit.id,
            UnconfirmedHabitLogRecord.period_start == period,
        )
        .all()
    )
    if not pending_records:
        return {}

    checked_in = _confirmed_user_ids(db, habit.id, period) | {record.user_id for record in pending_records}
    if not members.issubset(checked_in):
        return {}

    promoted: Dict[UUID, HabitLogRecord] = {}
    for pending in pending_records:
        confirmed = HabitLogRecord(
            habit_id=pending.habit_id,
            user_id=pending.user_id,
            period_start=pending.period_start,
            log_at=pending.log_at,
            duration_min=pending.duration_min,
        )
        db.add(confirmed)
        db.delete(pending)
        promoted[pending.user_id] = confirmed
    db.flush()

    configs = (
        db.query(UserHabitConfig)
        .filter(UserHabitConfig.habit_id == habit.id, UserHabitConfig.user_id.in_(members))
        .all()
    )
    for config in configs:
        if config.last_completed_period is not None and config.last_completed_period >= period:
            continue
        config.current_streak = next_streak(
            config.current_streak or 0,
            config.last_completed_period,
            period,
            habit.check_frequency,
            habit.check_days,
        )
        config.longest_streak = max(config.longest_streak or 0, config.current_streak)
        config.last_completed_period = period
        config.streak_update_at = now

    logger.info(
        "Habit %s period %s confirmed for %d cooperators",
        habit.id,
        period.isoformat(),
        len(members),
    )
    return promoted


def log_habit(
    db: Session,
    habit_id: UUID,
    user_id: UUID,
    *,
    duration_min: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LogResult:
    """Check ``user_id`` in for the habit's current period."""
    now = now or utcnow()
    try:
        habit = lock_habit(db, habit_id)
        members = cooperator_ids(db, habit.id)
        if user_id not in members:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not a cooperator of this habit")

        _validate_duration(habit, duration_min)

        day, period = current_period(habit, now)
        if not is_scheduled(day, habit.check_frequency, habit.check_days):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Habit is not scheduled on {day.isoformat()}",
            )

        reconcile_habit(db, habit, period)
        if _find_record(db, HabitLogRecord, habit.id, user_id, period) or _find_record(
            db, UnconfirmedHabitLogRecord, habit.id, user_id, period
        ):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Habit already logged for this period")

        record = UnconfirmedHabitLogRecord(
            habit_id=habit.id,
            user_id=user_id,
            period_start=period,
            log_at=now,
            duration_min=duration_min,
        )
        db.add(record)
        db.flush()

        promoted = confirm_period_if_complete(db, habit, period, members, now)
        checked_in = _confirmed_user_ids(db, habit.id, period) | _unconfirmed_user_ids(db, habit.id, period)
        config = db.get(UserHabitConfig, (user_id, habit.id))

        stored = promoted.get(user_id)
        if stored is not None:
            record_payload = serialize_record(stored, confirmed=True)
        else:
            record_payload = serialize_record(record, confirmed=False)
        result = LogResult(
            record=record_payload,
            confirmed=stored is not None,
            checked_in_user_ids=_sorted_ids(checked_in & members),
            pending_user_ids=_sorted_ids(members - checked_in),
            config=serialize_config(config, habit, period) if config else None,
        )
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Habit already logged for this period",
        ) from exc
    except Exception:
        db.rollback()
        raise

    logger.debug(
        "User %s checked in to habit %s for %s (confirmed=%s)",
        user_id,
        habit_id,
        period.isoformat(),
        result.confirmed,
    )
    return result


def withdraw_log(db: Session, habit_id: UUID, user_id: UUID, *, now: Optional[datetime] = None) -> None:
    """Remove the caller's check-in for the current period while it is still unconfirmed."""
    now = now or utcnow()
    try:
        habit = lock_habit(db, habit_id)
        _, period = current_period(habit, now)
        pending = _find_record(db, UnconfirmedHabitLogRecord, habit.id, user_id, period)
        if pending is None:
            if _find_record(db, HabitLogRecord, habit.id, user_id, period):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Check-in already confirmed by the group")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No check-in for the current period")

        db.delete(pending)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise


def list_logs(
    db: Session,
    user_id: UUID,
    *,
    habit_id: Optional[UUID] = None,
    from_: Optional[date] = None,
    to: Optional[date] = None,
    include_unconfirmed: bool = True,
) -> List[HabitLogRecordPayload]:
    """Return the user's check-ins ordered by period, oldest first."""
    models = [(HabitLogRecord, True)]
    if include_unconfirmed:
        models.append((UnconfirmedHabitLogRecord, False))

    items: List[HabitLogRecordPayload] = []
    for model, confirmed in models:
        query = db.query(model).filter(model.user_id == user_id)
        if habit_id:
            query = query.filter(model.habit_id == habit_id)
        if from_:
            query = query.filter(model.period_start >= from_)
        if to:
            query = query.filter(model.period_start <= to)
        items.extend(serialize_record(record, confirmed=confirmed) for record in query.order_by(asc(model.period_start)).all())

    items.sort(key=lambda item: (item.period_start, str(item.habit_id)))
    return items


def period_status(db: Session, habit: Habit, user_id: UUID, day: date, period: date) -> PeriodStatus:
    confirmed_ids = _confirmed_user_ids(db, habit.id, period)
    checked_in = confirmed_ids | _unconfirmed_user_ids(db, habit.id, period)
    return PeriodStatus(
        period_start=period,
        scheduled=is_scheduled(day, habit.check_frequency, habit.check_days),
        logged=user_id in checked_in,
        confirmed=bool(confirmed_ids),
        checked_in_user_ids=_sorted_ids(checked_in),
    )


def serialize_config(config: UserHabitConfig, habit: Habit, period: date) -> HabitConfigPayload:
    alive = is_streak_alive(config.last_completed_period, period, habit.check_frequency, habit.check_days)
    return HabitConfigPayload(
        current_streak=(config.current_streak or 0) if alive else 0,
        longest_streak=config.longest_streak or 0,
        last_completed_period=config.last_completed_period,
        heatmap_color=config.heatmap_color,
    )


def serialize_record(record, *, confirmed: bool) -> HabitLogRecordPayload:
    return HabitLogRecordPayload(
        id=record.id,
        habit_id=record.habit_id,
        user_id=record.user_id,
        period_start=record.period_start,
        log_at=record.log_at,
        duration_min=record.duration_min,
        confirmed=confirmed,
    )


def _validate_duration(habit: Habit, duration_min: Optional[int]) -> None:
    if habit.check_type == "time_interval" and not duration_min:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="duration_min is required for time_interval habits",
        )
    if habit.check_type == "binary" and duration_min is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="duration_min is only accepted for time_interval habits",
        )


def _find_record(db: Session, model, habit_id: UUID, user_id: UUID, period: date):
    return (
        db.query(model)
        .filter(model.habit_id == habit_id, model.user_id == user_id, model.period_start == period)
        .one_or_none()
    )


def _confirmed_user_ids(db: Session, habit_id: UUID, period: date) -> Set[UUID]:
    rows = (
        db.query(HabitLogRecord.user_id)
        .filter(HabitLogRecord.habit_id == habit_id, HabitLogRecord.period_start == period)
        .all()
    )
    return {row[0] for row in rows}


def _unconfirmed_user_ids(db: Session, habit_id: UUID, period: date) -> Set[UUID]:
    rows = (
        db.query(UnconfirmedHabitLogRecord.user_id)
        .filter(UnconfirmedHabitLogRecord.habit_id == habit_id, UnconfirmedHabitLogRecord.period_start == period)
        .all()
    )
    return {row[0] for row in rows}


def _sorted_ids(ids: Set[UUID]) -> List[UUID]:
    return sorted(ids, key=str)
