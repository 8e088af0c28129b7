"""Schemas for habit check-ins."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from lets_habit.api.schemas.habit import HabitConfigPayload


class HabitLogRequest(BaseModel):
    user_id: UUID
    duration_min: Optional[int] = Field(None, ge=1, le=1440)


class HabitLogRecordPayload(BaseModel):
    id: UUID
    habit_id: UUID
    user_id: UUID
    period_start: date
    log_at: datetime
    duration_min: Optional[int]
    confirmed: bool


class HabitLogResponse(BaseModel):
    record: HabitLogRecordPayload
    confirmed: bool
    checked_in_user_ids: List[UUID]
    pending_user_ids: List[UUID]
    config: Optional[HabitConfigPayload]
    request_id: str


class HabitLogListResponse(BaseModel):
    user_id: UUID
    items: List[HabitLogRecordPayload]
    request_id: str
