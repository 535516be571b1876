"""Notification schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import NotificationSetting
from ...shared.dates import to_iso

DEFAULT_REMINDER_TIMING = [1440, 60]


class NotificationSettingsRequest(BaseModel):
    emailEnabled: bool
    smsEnabled: bool
    phoneNumber: Optional[str] = None
    reminderTiming: list[int]

    @field_validator("reminderTiming")
    @classmethod
    def validate_reminder_timing(cls, v):
        if not 1 <= len(v) <= 5:
            raise ValueError("Between 1 and 5 reminder times are required")
        if any(minutes <= 0 for minutes in v):
            raise ValueError("Reminder times must be positive minutes")
        return v


class TestSmsRequest(BaseModel):
    phoneNumber: Optional[str] = None

    @field_validator("phoneNumber")
    @classmethod
    def require_phone(cls, v):
        if not v:
            raise ValueError("Phone number is required")
        return v


def settings_to_response(settings: NotificationSetting) -> dict:
    return {
        "id": settings.id,
        "emailEnabled": settings.email_enabled,
        "smsEnabled": settings.sms_enabled,
        "phoneNumber": settings.phone_number,
        "reminderTiming": settings.reminder_timing or DEFAULT_REMINDER_TIMING,
        "updatedAt": to_iso(settings.updated_at),
    }
