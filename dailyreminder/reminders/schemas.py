"""
Schemas for creating and editing reminders
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from .recurrence_models import Weekday, format_recurrence_days, parse_recurrence_days


def _require_text(value: str, field_name: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{field_name} must not be empty")
    return value


def _normalize_days(value) -> str:
    """Accept "Mon,Wed" or a list of tags/Weekday values; store canonical text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return format_recurrence_days(parse_recurrence_days(value))
    days = []
    for item in value:
        days.append(item if isinstance(item, Weekday) else Weekday.from_tag(str(item)))
    return format_recurrence_days(d for d in days if d is not None)


class ReminderCreate(BaseModel):
    """Schema for creating a reminder; fire time may not be in the past"""
    title: str
    description: str
    fire_at: datetime
    repeat_days: str = ""

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        return _require_text(v, "title")

    @field_validator("description")
    @classmethod
    def description_required(cls, v: str) -> str:
        return _require_text(v, "description")

    @field_validator("repeat_days", mode="before")
    @classmethod
    def normalize_days(cls, v) -> str:
        return _normalize_days(v)


class ReminderUpdate(BaseModel):
    """Schema for editing a reminder; unset fields are left unchanged"""
    title: Optional[str] = None
    description: Optional[str] = None
    fire_at: Optional[datetime] = None
    repeat_days: Optional[str] = None
    is_completed: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _require_text(v, "title")

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _require_text(v, "description")

    @field_validator("repeat_days", mode="before")
    @classmethod
    def normalize_days(cls, v) -> Optional[str]:
        return None if v is None else _normalize_days(v)
