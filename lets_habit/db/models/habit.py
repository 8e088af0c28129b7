"""Habit ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from lets_habit.db.base import Base

PUBLIC_LEVELS = ("public", "private")
CHECK_TYPES = ("binary", "time_interval")
CHECK_FREQUENCIES = ("daily", "weekly", "monthly")

ALL_WEEKDAYS_MASK = 0b1111111


class Habit(Base):
    __tablename__ = "habits"
    __table_args__ = (Index("ix_habits_creator_id", "creator_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    public_level = Column(String(length=16), nullable=False, server_default=sa_text("'private'"))
    check_type = Column(String(length=16), nullable=False, server_default=sa_text("'binary'"))
    check_frequency = Column(String(length=16), nullable=False, server_default=sa_text("'daily'"))
    # Bit 0 is Monday, bit 6 is Sunday. Only daily habits use a partial week.
    check_days = Column(Integer, nullable=False, default=ALL_WEEKDAYS_MASK, server_default=sa_text("127"))
    # Seconds past local midnight during which a log still counts for the previous day.
    check_deadline_delay = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
