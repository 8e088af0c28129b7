"""Database utilities and models."""

from lets_habit.db.base import Base
from lets_habit.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
