"""Schemas for user registration and profile updates."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, field_validator


def _clean_name(value: str) -> str:
    trimmed = value.strip()
    if not 1 <= len(trimmed) <= 64:
        raise ValueError("name must be between 1 and 64 characters after trimming")
    return trimmed


def _lower_email(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


class UserCreateRequest(BaseModel):
    name: str
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _clean_name(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _lower_email(value)


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value) if value is not None else None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _lower_email(value)


class UserSummary(BaseModel):
    id: UUID
    name: str


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: Optional[str]
    created_at: datetime
    request_id: str
