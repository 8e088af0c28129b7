"""Schemas for habits, their cooperators and per-user configuration."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from lets_habit.api.schemas.user import UserSummary

PublicLevel = Literal["public", "private"]
CheckType = Literal["binary", "time_interval"]
CheckFrequency = Literal["daily", "weekly", "monthly"]

_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def _clean_habit_name(value: str) -> str:
    trimmed = value.strip()
    if not 1 <= len(trimmed) <= 100:
        raise ValueError("name must be between 1 and 100 characters after trimming")
    return trimmed


def _clean_check_days(value: List[int]) -> List[int]:
    if not value:
        raise ValueError("check_days must contain at least one weekday")
    if any(day < 0 or day > 6 for day in value):
        raise ValueError("check_days entries must be between 0 (Monday) and 6 (Sunday)")
    return sorted(set(value))


class HabitCreateRequest(BaseModel):
    user_id: UUID
    name: str
    public_level: PublicLevel = "private"
    check_type: CheckType = "binary"
    check_frequency: CheckFrequency = "daily"
    check_days: List[int] = Field(default_factory=lambda: list(range(7)))
    check_deadline_delay: int = Field(0, ge=0, lt=86400, description="Seconds after midnight still counted as the previous day")
    cooperators: List[UUID] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _clean_habit_name(value)

    @field_validator("check_days")
    @classmethod
    def validate_check_days(cls, value: List[int]) -> List[int]:
        return _clean_check_days(value)


class HabitUpdateRequest(BaseModel):
    user_id: UUID
    name: Optional[str] = None
    public_level: Optional[PublicLevel] = None
    check_days: Optional[List[int]] = None
    check_deadline_delay: Optional[int] = Field(None, ge=0, lt=86400)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_habit_name(value) if value is not None else None

    @field_validator("check_days")
    @classmethod
    def validate_check_days(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        return _clean_check_days(value) if value is not None else None


class MembershipRequest(BaseModel):
    user_id: UUID


class CooperatorsAddRequest(BaseModel):
    user_id: UUID
    cooperator_ids: List[UUID] = Field(..., min_length=1)


class HabitConfigUpdateRequest(BaseModel):
    user_id: UUID
    heatmap_color: str

    @field_validator("heatmap_color")
    @classmethod
    def validate_color(cls, value: str) -> str:
        if not _HEX_COLOR_RE.match(value):
            raise ValueError("heatmap_color must look like #RRGGBB")
        return value.lower()


class HabitPayload(BaseModel):
    id: UUID
    creator_id: UUID
    name: str
    public_level: str
    check_type: str
    check_frequency: str
    check_days: List[int]
    check_deadline_delay: int
    created_at: datetime
    updated_at: datetime


class HabitConfigPayload(BaseModel):
    current_streak: int
    longest_streak: int
    last_completed_period: Optional[date]
    heatmap_color: str


class PeriodStatus(BaseModel):
    period_start: date
    scheduled: bool
    logged: bool
    confirmed: bool
    checked_in_user_ids: List[UUID]


class DetailedHabit(BaseModel):
    habit: HabitPayload
    cooperators: List[UserSummary]
    config: Optional[HabitConfigPayload]
    current_period: PeriodStatus


class DetailedHabitResponse(DetailedHabit):
    request_id: str


class HabitListResponse(BaseModel):
    habits: List[DetailedHabit]
    total: int
    page: int
    page_size: int
    request_id: str


class HabitLeaveResponse(BaseModel):
    habit_id: UUID
    habit_deleted: bool
    request_id: str


class HabitConfigResponse(BaseModel):
    habit_id: UUID
    user_id: UUID
    config: HabitConfigPayload
    request_id: str
