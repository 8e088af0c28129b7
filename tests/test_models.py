from lets_habit.db.base import Base
from lets_habit.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())
    expected = {
        "users",
        "habits",
        "habit_groups",
        "user_habit_configs",
        "habit_log_records",
        "unconfirmed_habit_log_records",
    }

    assert expected.issubset(table_names)


def test_log_tables_are_unique_per_user_and_period() -> None:
    for name in ("habit_log_records", "unconfirmed_habit_log_records"):
        table = Base.metadata.tables[name]
        unique_columns = [
            tuple(column.name for column in constraint.columns)
            for constraint in table.constraints
            if constraint.__class__.__name__ == "UniqueConstraint"
        ]
        assert ("habit_id", "user_id", "period_start") in unique_columns
