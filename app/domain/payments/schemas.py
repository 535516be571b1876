"""Payment schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...models import Payment
from ...shared.dates import to_iso
from ...shared.validators import validate_currency, validate_email_address


class CreatePaymentIntentRequest(BaseModel):
    amount: float
    currency: str = "USD"
    eventTypeId: str
    guestEmail: str
    guestName: str
    metadata: Optional[dict[str, Any]] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("Amount must be positive")
        return v

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        return validate_currency(v)

    @field_validator("eventTypeId")
    @classmethod
    def require_event_type(cls, v):
        if not v:
            raise ValueError("Event type is required")
        return v

    @field_validator("guestEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email_address(v)

    @field_validator("guestName")
    @classmethod
    def require_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v


class RefundRequest(BaseModel):
    bookingId: str
    amount: Optional[float] = None
    reason: Optional[str] = None

    @field_validator("bookingId")
    @classmethod
    def require_booking(cls, v):
        if not v:
            raise ValueError("Booking ID is required")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Amount must be positive")
        return v

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Reason is too long")
        return v


def payment_to_response(payment: Payment, include_booking: bool = False) -> dict:
    response = {
        "id": payment.id,
        "bookingId": payment.booking_id,
        "userId": payment.user_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "stripePaymentIntentId": payment.stripe_payment_intent_id,
        "stripeRefundId": payment.stripe_refund_id,
        "refundAmount": payment.refund_amount,
        "guestEmail": payment.guest_email,
        "guestName": payment.guest_name,
        "metadata": payment.payment_metadata,
        "createdAt": to_iso(payment.created_at),
        "updatedAt": to_iso(payment.updated_at),
    }
    if include_booking:
        booking = payment.booking
        response["booking"] = (
            {
                "id": booking.id,
                "guestName": booking.guest_name,
                "guestEmail": booking.guest_email,
                "startTime": to_iso(booking.start_time),
                "endTime": to_iso(booking.end_time),
            }
            if booking
            else None
        )
    return response
