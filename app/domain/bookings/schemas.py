"""Booking schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import Booking
from ...shared.dates import parse_datetime, to_iso
from ...shared.validators import validate_email_address
from ..event_types.schemas import event_type_to_response
from ..payments.schemas import payment_to_response

BOOKING_STATUSES = ("PENDING", "CONFIRMED", "CANCELLED", "COMPLETED", "NO_SHOW")
HOST_SETTABLE_STATUSES = ("COMPLETED", "NO_SHOW")


def _check_datetime(value: str, message: str) -> str:
    try:
        parse_datetime(value)
    except ValueError as e:
        raise ValueError(message) from e
    return value


class TimeRangeMixin(BaseModel):
    startTime: str
    endTime: str

    @field_validator("startTime")
    @classmethod
    def check_start(cls, v):
        return _check_datetime(v, "Invalid start time")

    @field_validator("endTime")
    @classmethod
    def check_end(cls, v):
        return _check_datetime(v, "Invalid end time")

    @model_validator(mode="after")
    def check_order(self):
        if parse_datetime(self.startTime) >= parse_datetime(self.endTime):
            raise ValueError("End time must be after start time")
        return self


class CreateBookingRequest(TimeRangeMixin):
    eventTypeId: str
    guestName: str
    guestEmail: str
    guestPhone: Optional[str] = None
    guestTimezone: str
    customResponses: Optional[dict[str, Any]] = None
    notes: Optional[str] = None

    @field_validator("eventTypeId")
    @classmethod
    def require_event_type(cls, v):
        if not v:
            raise ValueError("Event type is required")
        return v

    @field_validator("guestName")
    @classmethod
    def validate_guest_name(cls, v):
        if len(v.strip()) < 1:
            raise ValueError("Name is required")
        if len(v) > 100:
            raise ValueError("Name is too long")
        return v

    @field_validator("guestEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email_address(v)

    @field_validator("guestTimezone")
    @classmethod
    def require_timezone(cls, v):
        if not v:
            raise ValueError("Timezone is required")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Notes are too long")
        return v


class UpdateBookingRequest(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in HOST_SETTABLE_STATUSES:
            raise ValueError("Status can only be set to COMPLETED or NO_SHOW")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Notes are too long")
        return v


class RescheduleBookingRequest(TimeRangeMixin):
    token: Optional[str] = None


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None
    token: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Reason is too long")
        return v


def booking_to_response(
    booking: Booking, include_event_type: bool = True, include_payment: bool = False
) -> dict:
    response = {
        "id": booking.id,
        "eventTypeId": booking.event_type_id,
        "userId": booking.user_id,
        "guestName": booking.guest_name,
        "guestEmail": booking.guest_email,
        "guestPhone": booking.guest_phone,
        "guestTimezone": booking.guest_timezone,
        "startTime": to_iso(booking.start_time),
        "endTime": to_iso(booking.end_time),
        "status": booking.status,
        "location": booking.location,
        "meetingLink": booking.meeting_link,
        "meetingPassword": booking.meeting_password,
        "customResponses": booking.custom_responses,
        "notes": booking.notes,
        "cancellationReason": booking.cancellation_reason,
        "cancelledBy": booking.cancelled_by,
        "cancelledAt": to_iso(booking.cancelled_at),
        "rescheduleToken": booking.reschedule_token,
        "cancelToken": booking.cancel_token,
        "createdAt": to_iso(booking.created_at),
        "updatedAt": to_iso(booking.updated_at),
    }
    if include_event_type and booking.event_type is not None:
        response["eventType"] = event_type_to_response(booking.event_type)
    if include_payment:
        response["payment"] = payment_to_response(booking.payment) if booking.payment else None
    return response
