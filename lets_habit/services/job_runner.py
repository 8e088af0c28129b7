"""Batch reconciliation of every habit's streak state."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.orm import Session

from lets_habit.db.base import utcnow
from lets_habit.db.models.habit import Habit
from lets_habit.services.habit_log_service import current_period, reconcile_habit

logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    habits_processed: int
    stale_records_removed: int
    streaks_reset: int
    habits_failed: int = 0


def reconcile_all_habits(
    db: Session,
    *,
    habit_ids: Optional[Iterable[UUID]] = None,
    now: Optional[datetime] = None,
) -> JobRunResult:
    """Reconcile each habit in its own transaction; failures are logged and skipped."""
    now = now or utcnow()
    ids = _normalize_habit_ids(db, habit_ids)

    processed = 0
    removed = 0
    reset = 0
    failed = 0
    for habit_id in ids:
        try:
            habit = db.get(Habit, habit_id)
            if habit is None:
                logger.debug("Habit %s vanished before reconciliation", habit_id)
                continue
            _, period = current_period(habit, now)
            result = reconcile_habit(db, habit, period)
            db.commit()
        except Exception:
            db.rollback()
            failed += 1
            logger.exception("Reconciliation failed for habit %s", habit_id)
            continue
        processed += 1
        removed += result.stale_removed
        reset += result.streaks_reset

    logger.info(
        "Reconciled %d habits (stale check-ins removed=%d, streaks reset=%d, failed=%d)",
        processed,
        removed,
        reset,
        failed,
    )
    return JobRunResult(
        habits_processed=processed,
        stale_records_removed=removed,
        streaks_reset=reset,
        habits_failed=failed,
    )


def _normalize_habit_ids(db: Session, habit_ids: Optional[Iterable[UUID]]) -> List[UUID]:
    if habit_ids is None:
        return [row[0] for row in db.query(Habit.id).order_by(asc(Habit.created_at)).all()]
    return list(dict.fromkeys(habit_ids))
