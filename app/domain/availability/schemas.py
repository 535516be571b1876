"""Availability schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import Availability, DateOverride
from ...shared.dates import parse_date, to_iso
from ...shared.validators import validate_time
from .slots import time_to_minutes


class WeeklyScheduleItem(BaseModel):
    dayOfWeek: int
    startTime: str
    endTime: str

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day(cls, v):
        if not 0 <= v <= 6:
            raise ValueError("Day of week must be between 0 and 6")
        return v

    @field_validator("startTime", "endTime")
    @classmethod
    def check_time(cls, v):
        return validate_time(v)

    @model_validator(mode="after")
    def check_order(self):
        if time_to_minutes(self.endTime) <= time_to_minutes(self.startTime):
            raise ValueError("End time must be after start time")
        return self


class ScheduleRequest(BaseModel):
    schedule: list[WeeklyScheduleItem]


class DateOverrideRequest(BaseModel):
    date: str
    isAvailable: bool
    startTime: Optional[str] = None
    endTime: Optional[str] = None

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        parse_date(v)
        return v[:10]

    @field_validator("startTime", "endTime")
    @classmethod
    def check_time(cls, v):
        return validate_time(v) if v is not None else v


class DeleteOverrideRequest(BaseModel):
    date: str

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        parse_date(v)
        return v[:10]


class CheckSlotRequest(BaseModel):
    startTime: str
    duration: int

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be greater than 0")
        return v


def schedule_item_to_response(item: Availability) -> dict:
    return {
        "id": item.id,
        "dayOfWeek": item.day_of_week,
        "startTime": item.start_time,
        "endTime": item.end_time,
    }


def override_to_response(override: DateOverride) -> dict:
    return {
        "id": override.id,
        "date": override.date.isoformat(),
        "isAvailable": override.is_available,
        "startTime": override.start_time,
        "endTime": override.end_time,
        "createdAt": to_iso(override.created_at),
    }
