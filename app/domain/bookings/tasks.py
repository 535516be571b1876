"""Booking side effects run as FastAPI background tasks

Each task opens its own session because the request session is closed by the
time the task runs. Failures are logged and never reach the guest.
"""

import logging
from datetime import datetime

from ...database import SessionLocal
from ...email_service import (
    send_booking_confirmation,
    send_cancellation_email,
    send_host_notification,
    send_reschedule_email,
)
from ...models import Booking
from ...services import sms_service
from ..notifications.service import NotificationService

logger = logging.getLogger(__name__)


async def _send_guest_sms(booking: Booking, message: str) -> None:
    if not booking.guest_phone or not sms_service.is_configured():
        return
    success, error = await sms_service.send_sms(booking.guest_phone, message)
    if not success:
        logger.warning(f"⚠️ SMS for booking {booking.id} not sent: {error}")


async def process_new_booking(booking_id: str) -> None:
    """Schedule reminders, then send guest and host notifications"""
    db = SessionLocal()
    try:
        booking = db.get(Booking, booking_id)
        if not booking:
            logger.warning(f"⚠️ Booking {booking_id} vanished before notifications were sent")
            return

        try:
            NotificationService(db).schedule_reminders(booking)
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to schedule reminders for booking {booking_id}: {e}")

        for label, sender in (
            ("Confirmation email", send_booking_confirmation),
            ("Host notification", send_host_notification),
        ):
            try:
                await sender(booking)
            except Exception as e:
                logger.error(f"❌ {label} failed for booking {booking_id}: {e}")

        await _send_guest_sms(booking, sms_service.booking_confirmation_message(booking))
    finally:
        db.close()


async def process_rescheduled_booking(booking_id: str, previous_start: datetime) -> None:
    db = SessionLocal()
    try:
        booking = db.get(Booking, booking_id)
        if not booking:
            return

        try:
            NotificationService(db).reschedule_reminders(booking)
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to reschedule reminders for booking {booking_id}: {e}")

        try:
            await send_reschedule_email(booking, previous_start)
        except Exception as e:
            logger.error(f"❌ Reschedule email failed for booking {booking_id}: {e}")
    finally:
        db.close()


async def process_cancelled_booking(booking_id: str) -> None:
    db = SessionLocal()
    try:
        booking = db.get(Booking, booking_id)
        if not booking:
            return

        try:
            await send_cancellation_email(booking)
        except Exception as e:
            logger.error(f"❌ Cancellation email failed for booking {booking_id}: {e}")

        await _send_guest_sms(booking, sms_service.booking_cancellation_message(booking))
    finally:
        db.close()
