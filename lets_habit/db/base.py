"""Declarative base shared by all ORM models."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Timezone-aware now, shared by model defaults and services."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass
