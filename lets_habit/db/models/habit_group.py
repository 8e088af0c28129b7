"""Habit membership ORM model."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, func
from sqlalchemy.dialects.postgresql import UUID

from lets_habit.db.base import Base, utcnow


class HabitGroup(Base):
    __tablename__ = "habit_groups"
    __table_args__ = (Index("ix_habit_groups_user_id", "user_id"),)

    habit_id = Column(UUID(as_uuid=True), ForeignKey("habits.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    # Client-side default keeps sub-second ordering between joins.
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
