"""
Twilio SMS Service
Sends booking confirmations and reminders through the Twilio REST API
"""

import logging
from typing import Optional

import httpx

from ..config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER
from ..models import Booking
from ..shared.validators import format_phone_number, validate_phone_number

logger = logging.getLogger(__name__)

TWILIO_API_URL = "https://api.twilio.com/2010-04-01"


def is_configured() -> bool:
    return bool(TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER)


async def send_sms(to_phone: str, message_body: str) -> tuple[bool, Optional[str]]:
    """
    Send SMS via Twilio

    Args:
        to_phone: Recipient phone number, normalized to E.164 before sending
        message_body: SMS message content

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not is_configured():
        logger.warning("⚠️ Twilio not configured - SMS not sent")
        return False, "SMS service not configured"

    if not validate_phone_number(to_phone):
        logger.warning(f"⚠️ Invalid phone number for SMS: {to_phone}")
        return False, "Invalid phone number format"

    to_phone = format_phone_number(to_phone)

    try:
        logger.info(f"📱 Sending SMS to {to_phone}")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{TWILIO_API_URL}/Accounts/{TWILIO_ACCOUNT_SID}/Messages.json",
                auth=(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN),
                data={"To": to_phone, "From": TWILIO_PHONE_NUMBER, "Body": message_body},
                timeout=10.0,
            )

        if response.status_code in [200, 201]:
            message_sid = response.json().get("sid")
            logger.info(f"✅ SMS sent successfully to {to_phone} (SID: {message_sid})")
            return True, None

        error_message = response.json().get("message", "Unknown error")
        logger.error(f"❌ Twilio rejected SMS to {to_phone}: {error_message}")
        return False, error_message
    except httpx.HTTPError as e:
        logger.error(f"❌ SMS send error to {to_phone}: {e}")
        return False, str(e)


def _short_when(booking: Booking) -> str:
    from ..email_service import format_booking_time

    return format_booking_time(booking.start_time, booking.guest_timezone)


def booking_confirmation_message(booking: Booking) -> str:
    host = booking.user
    message = (
        f"Booking confirmed: {booking.event_type.title} with {host.name or host.email} "
        f"on {_short_when(booking)}."
    )
    if booking.meeting_link:
        message += f" Join: {booking.meeting_link}"
    return message


def booking_reminder_message(booking: Booking, time_until: str) -> str:
    host = booking.user
    message = (
        f"Reminder: {booking.event_type.title} with {host.name or host.email} "
        f"starts in {time_until} ({_short_when(booking)})."
    )
    if booking.meeting_link:
        message += f" Join: {booking.meeting_link}"
    return message


def booking_cancellation_message(booking: Booking) -> str:
    return f"Your booking for {booking.event_type.title} on {_short_when(booking)} has been cancelled."


async def send_test_sms(to_phone: str) -> tuple[bool, Optional[str]]:
    return await send_sms(to_phone, "Test message: SMS notifications are working.")
