"""Confirmed and unconfirmed habit log records.

Both tables share one shape. A check-in first lands in
``unconfirmed_habit_log_records`` and moves to ``habit_log_records`` once
every cooperator of the habit has checked in for the same period.
"""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr

from lets_habit.db.base import Base


class _LogRecordColumns:
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    period_start = Column(Date, nullable=False)
    log_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    duration_min = Column(Integer, nullable=True)

    @declared_attr
    def habit_id(cls):
        return Column(UUID(as_uuid=True), ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)

    @declared_attr
    def user_id(cls):
        return Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


class HabitLogRecord(_LogRecordColumns, Base):
    __tablename__ = "habit_log_records"
    __table_args__ = (
        UniqueConstraint("habit_id", "user_id", "period_start", name="uq_habit_log_records_period"),
        Index("ix_habit_log_records_user_period", "user_id", "period_start"),
    )


class UnconfirmedHabitLogRecord(_LogRecordColumns, Base):
    __tablename__ = "unconfirmed_habit_log_records"
    __table_args__ = (
        UniqueConstraint("habit_id", "user_id", "period_start", name="uq_unconfirmed_habit_log_records_period"),
        Index("ix_unconfirmed_habit_log_records_habit_period", "habit_id", "period_start"),
    )
