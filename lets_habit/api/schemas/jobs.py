"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["reconcile"] = "reconcile"
    habit_id: Optional[UUID] = None


class JobRunResponse(BaseModel):
    job: str
    habits_processed: int
    stale_records_removed: int
    streaks_reset: int
    request_id: str
