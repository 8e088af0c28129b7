"""Calendar rules for habit periods and streak continuity.

Everything here is pure: callers pass the instant, timezone and habit schedule
and get dates back. A period is identified by the date it starts on.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from functools import lru_cache
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from lets_habit.core.config import settings
from lets_habit.db.models.habit import ALL_WEEKDAYS_MASK

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"


@lru_cache(maxsize=None)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def day_timezone() -> tzinfo:
    return _zone(settings.day_timezone)


def logical_day(moment: datetime, tz: tzinfo, deadline_delay: int = 0) -> date:
    """Return the calendar day ``moment`` counts toward.

    Naive datetimes are treated as UTC. A positive ``deadline_delay`` (seconds)
    keeps the previous day open past local midnight.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=_zone("UTC"))
    local = moment.astimezone(tz)
    return (local - timedelta(seconds=deadline_delay)).date()


def period_start(day: date, frequency: str) -> date:
    if frequency == DAILY:
        return day
    if frequency == WEEKLY:
        return day - timedelta(days=day.weekday())
    if frequency == MONTHLY:
        return day.replace(day=1)
    raise ValueError(f"unknown check frequency: {frequency}")


def is_scheduled(day: date, frequency: str, check_days: int) -> bool:
    if frequency != DAILY:
        return True
    return bool(check_days & (1 << day.weekday()))


def previous_period(start: date, frequency: str, check_days: int = ALL_WEEKDAYS_MASK) -> date:
    """Return the start of the period a streak must have reached before ``start``."""
    if frequency == DAILY:
        if not check_days & ALL_WEEKDAYS_MASK:
            raise ValueError("daily habit has no scheduled weekdays")
        candidate = start - timedelta(days=1)
        while not is_scheduled(candidate, frequency, check_days):
            candidate -= timedelta(days=1)
        return candidate
    if frequency == WEEKLY:
        return start - timedelta(days=7)
    if frequency == MONTHLY:
        last_of_previous = start.replace(day=1) - timedelta(days=1)
        return last_of_previous.replace(day=1)
    raise ValueError(f"unknown check frequency: {frequency}")


def next_streak(
    current: int,
    last_completed: Optional[date],
    period: date,
    frequency: str,
    check_days: int = ALL_WEEKDAYS_MASK,
) -> int:
    """Streak value after ``period`` has been completed by the whole group.

    A ``last_completed`` on or after ``period`` leaves the streak unchanged; it
    happens when a raised deadline delay moves the logical day backwards.
    """
    if last_completed is None:
        return 1
    if last_completed >= period:
        return current
    if last_completed >= previous_period(period, frequency, check_days):
        return current + 1
    return 1


def is_streak_alive(
    last_completed: Optional[date],
    current_period: date,
    frequency: str,
    check_days: int = ALL_WEEKDAYS_MASK,
) -> bool:
    """True while no scheduled period between ``last_completed`` and ``current_period`` was missed.

    Comparing with ``>=`` keeps streaks intact when the schedule or deadline
    delay of a habit changes after a completion.
    """
    if last_completed is None:
        return False
    return last_completed >= previous_period(current_period, frequency, check_days)


def weekdays_to_mask(weekdays: Iterable[int]) -> int:
    mask = 0
    for weekday in weekdays:
        if not 0 <= weekday <= 6:
            raise ValueError(f"weekday out of range: {weekday}")
        mask |= 1 << weekday
    return mask


def mask_to_weekdays(mask: int) -> List[int]:
    return [weekday for weekday in range(7) if mask & (1 << weekday)]
