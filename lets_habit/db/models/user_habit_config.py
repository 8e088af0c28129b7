"""Per user, per habit streak state and display preferences."""
from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from lets_habit.db.base import Base


class UserHabitConfig(Base):
    __tablename__ = "user_habit_configs"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    habit_id = Column(UUID(as_uuid=True), ForeignKey("habits.id", ondelete="CASCADE"), primary_key=True)
    current_streak = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    longest_streak = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    last_completed_period = Column(Date, nullable=True)
    streak_update_at = Column(DateTime(timezone=True), nullable=True)
    heatmap_color = Column(String(length=16), nullable=False)
