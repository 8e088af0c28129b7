"""ORM models exposed for metadata discovery."""
from lets_habit.db.models.habit import Habit
from lets_habit.db.models.habit_group import HabitGroup
from lets_habit.db.models.habit_log_record import HabitLogRecord, UnconfirmedHabitLogRecord
from lets_habit.db.models.user import User
from lets_habit.db.models.user_habit_config import UserHabitConfig

__all__ = [
    "Habit",
    "HabitGroup",
    "HabitLogRecord",
    "UnconfirmedHabitLogRecord",
    "User",
    "UserHabitConfig",
]
