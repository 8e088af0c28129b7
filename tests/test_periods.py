from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from lets_habit.services import periods

MON_WED_FRI = periods.weekdays_to_mask([0, 2, 4])


def test_logical_day_uses_timezone_and_deadline_delay() -> None:
    seoul = ZoneInfo("Asia/Seoul")
    moment = datetime(2024, 1, 1, 15, 30, tzinfo=timezone.utc)  # 00:30 on Jan 2 in Seoul

    assert periods.logical_day(moment, seoul) == date(2024, 1, 2)
    assert periods.logical_day(moment, seoul, deadline_delay=3600) == date(2024, 1, 1)
    assert periods.logical_day(moment, ZoneInfo("UTC")) == date(2024, 1, 1)


def test_logical_day_treats_naive_datetimes_as_utc() -> None:
    seoul = ZoneInfo("Asia/Seoul")
    assert periods.logical_day(datetime(2024, 1, 1, 15, 30), seoul) == date(2024, 1, 2)


@pytest.mark.parametrize(
    "frequency, day, expected",
    [
        ("daily", date(2024, 1, 3), date(2024, 1, 3)),
        ("weekly", date(2024, 1, 3), date(2024, 1, 1)),
        ("weekly", date(2024, 1, 7), date(2024, 1, 1)),
        ("monthly", date(2024, 2, 29), date(2024, 2, 1)),
    ],
)
def test_period_start(frequency: str, day: date, expected: date) -> None:
    assert periods.period_start(day, frequency) == expected


def test_period_start_rejects_unknown_frequency() -> None:
    with pytest.raises(ValueError):
        periods.period_start(date(2024, 1, 1), "hourly")


def test_is_scheduled_only_limits_daily_habits() -> None:
    tuesday = date(2024, 1, 2)
    assert periods.is_scheduled(date(2024, 1, 1), "daily", MON_WED_FRI)
    assert not periods.is_scheduled(tuesday, "daily", MON_WED_FRI)
    assert periods.is_scheduled(tuesday, "weekly", MON_WED_FRI)


def test_previous_period_skips_unscheduled_days() -> None:
    assert periods.previous_period(date(2024, 1, 3), "daily", MON_WED_FRI) == date(2024, 1, 1)
    # Monday's predecessor is the previous Friday.
    assert periods.previous_period(date(2024, 1, 8), "daily", MON_WED_FRI) == date(2024, 1, 5)
    assert periods.previous_period(date(2024, 1, 8), "weekly") == date(2024, 1, 1)
    assert periods.previous_period(date(2024, 1, 1), "monthly") == date(2023, 12, 1)
    assert periods.previous_period(date(2024, 3, 1), "monthly") == date(2024, 2, 1)


def test_previous_period_requires_a_scheduled_weekday() -> None:
    with pytest.raises(ValueError):
        periods.previous_period(date(2024, 1, 3), "daily", 0)


def test_next_streak_continues_restarts_and_is_idempotent() -> None:
    assert periods.next_streak(0, None, date(2024, 1, 1), "daily") == 1
    assert periods.next_streak(3, date(2024, 1, 1), date(2024, 1, 2), "daily") == 4
    assert periods.next_streak(3, date(2024, 1, 1), date(2024, 1, 3), "daily") == 1
    assert periods.next_streak(3, date(2024, 1, 2), date(2024, 1, 2), "daily") == 3
    assert periods.next_streak(2, date(2024, 1, 5), date(2024, 1, 8), "daily", MON_WED_FRI) == 3


def test_is_streak_alive() -> None:
    assert not periods.is_streak_alive(None, date(2024, 1, 2), "daily")
    assert periods.is_streak_alive(date(2024, 1, 2), date(2024, 1, 2), "daily")
    assert periods.is_streak_alive(date(2024, 1, 1), date(2024, 1, 2), "daily")
    assert not periods.is_streak_alive(date(2023, 12, 31), date(2024, 1, 2), "daily")
    assert periods.is_streak_alive(date(2024, 1, 1), date(2024, 1, 8), "weekly")


def test_weekday_mask_conversion() -> None:
    assert MON_WED_FRI == 0b10101
    assert periods.mask_to_weekdays(MON_WED_FRI) == [0, 2, 4]
    assert periods.mask_to_weekdays(periods.weekdays_to_mask(range(7))) == list(range(7))
    with pytest.raises(ValueError):
        periods.weekdays_to_mask([7])


def test_completion_after_current_period_keeps_streak() -> None:
    # A raised deadline delay can put the current period before the last completion.
    assert periods.is_streak_alive(date(2024, 1, 2), date(2024, 1, 1), "daily")
    assert periods.next_streak(2, date(2024, 1, 2), date(2024, 1, 1), "daily") == 2


def test_schedule_change_keeps_streak_alive() -> None:
    tue_thu = periods.weekdays_to_mask([1, 3])
    # Completed on Wednesday under a Mon/Wed/Fri schedule, now Tue/Thu.
    assert periods.is_streak_alive(date(2024, 1, 3), date(2024, 1, 4), "daily", tue_thu)
    assert periods.next_streak(2, date(2024, 1, 3), date(2024, 1, 4), "daily", tue_thu) == 3
    assert not periods.is_streak_alive(date(2024, 1, 1), date(2024, 1, 4), "daily", tue_thu)
