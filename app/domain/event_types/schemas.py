"""Event type schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import EventType
from ...shared.dates import to_iso
from ...shared.validators import validate_currency, validate_hex_color, validate_slug

LOCATION_TYPES = ("VIDEO_ZOOM", "VIDEO_GOOGLE_MEET", "VIDEO_TEAMS", "PHONE", "IN_PERSON", "CUSTOM")
QUESTION_TYPES = ("text", "textarea", "select", "radio", "checkbox")
SCHEDULING_TYPES = ("COLLECTIVE", "ROUND_ROBIN")


class CustomQuestion(BaseModel):
    id: str
    question: str
    type: str
    required: bool = False
    options: Optional[list[str]] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in QUESTION_TYPES:
            raise ValueError(f"Question type must be one of: {', '.join(QUESTION_TYPES)}")
        return v


class EventTypeFields(BaseModel):
    """Validation shared by create and update"""

    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = None
    locationType: Optional[str] = None
    locationDetails: Optional[str] = None
    minimumNotice: Optional[int] = None
    bufferTimeBefore: Optional[int] = None
    bufferTimeAfter: Optional[int] = None
    maxBookingWindow: Optional[int] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    color: Optional[str] = None
    customQuestions: Optional[list[CustomQuestion]] = None
    isActive: Optional[bool] = None
    teamId: Optional[str] = None
    schedulingType: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is not None:
            if len(v.strip()) < 1:
                raise ValueError("Title is required")
            if len(v) > 100:
                raise ValueError("Title is too long")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Description is too long")
        return v

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and not 5 <= v <= 480:
            raise ValueError("Duration must be between 5 and 480 minutes")
        return v

    @field_validator("locationType")
    @classmethod
    def validate_location_type(cls, v):
        if v is not None and v not in LOCATION_TYPES:
            raise ValueError("Invalid location type")
        return v

    @field_validator("minimumNotice", "bufferTimeBefore", "bufferTimeAfter")
    @classmethod
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("Value must be 0 or greater")
        return v

    @field_validator("maxBookingWindow")
    @classmethod
    def validate_booking_window(cls, v):
        if v is not None and not 1 <= v <= 365:
            raise ValueError("Booking window must be between 1 and 365 days")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Price must be 0 or greater")
        return v

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        return validate_currency(v) if v is not None else v

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return validate_hex_color(v)

    @field_validator("schedulingType")
    @classmethod
    def validate_scheduling_type(cls, v):
        if v is not None and v not in SCHEDULING_TYPES:
            raise ValueError("Scheduling type must be COLLECTIVE or ROUND_ROBIN")
        return v


class EventTypeCreate(EventTypeFields):
    title: str
    slug: str
    duration: int
    locationType: str = "VIDEO_ZOOM"
    minimumNotice: int = 0
    bufferTimeBefore: int = 0
    bufferTimeAfter: int = 0
    maxBookingWindow: int = 60
    currency: str = "USD"
    isActive: bool = True

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v):
        if not 1 <= len(v) <= 50:
            raise ValueError("Slug must be between 1 and 50 characters")
        return validate_slug(v)


class EventTypeUpdate(EventTypeFields):
    """Partial update; the slug cannot be changed here"""


# ============================================================================
# RESPONSE SHAPING
# ============================================================================

FIELD_MAP = {
    "title": "title",
    "description": "description",
    "duration": "duration",
    "locationType": "location_type",
    "locationDetails": "location_details",
    "minimumNotice": "minimum_notice",
    "bufferTimeBefore": "buffer_time_before",
    "bufferTimeAfter": "buffer_time_after",
    "maxBookingWindow": "max_booking_window",
    "price": "price",
    "currency": "currency",
    "color": "color",
    "customQuestions": "custom_questions",
    "isActive": "is_active",
    "teamId": "team_id",
    "schedulingType": "scheduling_type",
}


def to_columns(data: EventTypeFields, only_set: bool = True) -> dict:
    """Map request fields onto column names"""
    payload = data.model_dump(exclude_unset=only_set)
    return {FIELD_MAP[k]: v for k, v in payload.items() if k in FIELD_MAP}


def event_type_to_response(event_type: EventType) -> dict:
    return {
        "id": event_type.id,
        "userId": event_type.user_id,
        "teamId": event_type.team_id,
        "title": event_type.title,
        "slug": event_type.slug,
        "description": event_type.description,
        "duration": event_type.duration,
        "locationType": event_type.location_type,
        "locationDetails": event_type.location_details,
        "minimumNotice": event_type.minimum_notice,
        "bufferTimeBefore": event_type.buffer_time_before,
        "bufferTimeAfter": event_type.buffer_time_after,
        "maxBookingWindow": event_type.max_booking_window,
        "price": event_type.price,
        "currency": event_type.currency,
        "color": event_type.color,
        "customQuestions": event_type.custom_questions or [],
        "isActive": event_type.is_active,
        "schedulingType": event_type.scheduling_type,
        "createdAt": to_iso(event_type.created_at),
        "updatedAt": to_iso(event_type.updated_at),
    }
