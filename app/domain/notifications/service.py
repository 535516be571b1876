"""Notification service - Reminder scheduling, delivery and notification settings"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import format_time_until, send_reminder_email
from ...models import Booking, NotificationSetting, Reminder, User
from ...services import sms_service
from ...shared.dates import utc_now
from ...shared.validators import validate_phone_number
from .repository import NotificationRepository
from .schemas import DEFAULT_REMINDER_TIMING, NotificationSettingsRequest

logger = logging.getLogger(__name__)

RETRY_WINDOW_MINUTES = 5


class NotificationService:
    """Service layer for notification settings and booking reminders"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    # ========================================================================
    # SETTINGS
    # ========================================================================

    def get_settings(self, user: User) -> NotificationSetting:
        """Get the user's settings, creating the defaults on first access"""
        settings = self.repo.get_settings(self.db, user.id)
        if settings is None:
            settings = self.repo.save_settings(
                self.db,
                user.id,
                email_enabled=True,
                sms_enabled=False,
                reminder_timing=list(DEFAULT_REMINDER_TIMING),
            )
        return settings

    def update_settings(self, user: User, data: NotificationSettingsRequest) -> NotificationSetting:
        if data.smsEnabled and not validate_phone_number(data.phoneNumber):
            raise HTTPException(status_code=400, detail="Invalid phone number format")

        settings = self.repo.save_settings(
            self.db,
            user.id,
            email_enabled=data.emailEnabled,
            sms_enabled=data.smsEnabled,
            phone_number=data.phoneNumber or None,
            reminder_timing=data.reminderTiming,
        )
        logger.info(f"✅ Notification settings updated for user {user.id}")
        return settings

    async def send_test_sms(self, phone_number: str) -> tuple[bool, Optional[str]]:
        return await sms_service.send_test_sms(phone_number)

    def get_stats(self, user: User) -> dict:
        return {
            "sent": self.repo.count_by_status(self.db, user.id, "SENT"),
            "failed": self.repo.count_by_status(self.db, user.id, "FAILED"),
            "pending": self.repo.count_by_status(self.db, user.id, "PENDING"),
        }

    # ========================================================================
    # REMINDER SCHEDULING
    # ========================================================================

    def schedule_reminders(self, booking: Booking) -> int:
        """Create PENDING reminders for every timing that is still in the future"""
        settings = self.repo.get_settings(self.db, booking.user_id)
        timing = (settings.reminder_timing if settings else None) or DEFAULT_REMINDER_TIMING
        email_enabled = settings.email_enabled if settings else True
        sms_enabled = bool(settings and settings.sms_enabled and settings.phone_number)

        now = utc_now()
        reminders = []
        for minutes_before in timing:
            scheduled_for = booking.start_time - timedelta(minutes=minutes_before)
            if scheduled_for <= now:
                continue
            if email_enabled:
                reminders.append(
                    Reminder(booking_id=booking.id, type="EMAIL", scheduled_for=scheduled_for)
                )
            if sms_enabled:
                reminders.append(
                    Reminder(booking_id=booking.id, type="SMS", scheduled_for=scheduled_for)
                )

        if reminders:
            self.repo.add_reminders(self.db, reminders)
        logger.info(f"⏰ Scheduled {len(reminders)} reminders for booking {booking.id}")
        return len(reminders)

    def cancel_reminders(self, booking_id: str) -> int:
        return self.repo.fail_pending(self.db, booking_id)

    def reschedule_reminders(self, booking: Booking) -> int:
        self.repo.delete_pending(self.db, booking.id)
        return self.schedule_reminders(booking)

    # ========================================================================
    # REMINDER DELIVERY
    # ========================================================================

    async def _deliver(self, reminder: Reminder, minutes_before: int) -> tuple[bool, Optional[str]]:
        booking = reminder.booking
        if reminder.type == "EMAIL":
            await send_reminder_email(booking, minutes_before)
            return True, None

        settings = self.repo.get_settings(self.db, booking.user_id)
        if not settings or not settings.sms_enabled or not settings.phone_number:
            return False, "SMS disabled or no phone number configured"
        message = sms_service.booking_reminder_message(booking, format_time_until(minutes_before))
        return await sms_service.send_sms(settings.phone_number, message)

    async def process_pending_reminders(self) -> int:
        """Send due reminders; returns how many were delivered"""
        now = utc_now()
        due = self.repo.get_due(self.db, now)
        processed = 0

        for reminder in due:
            booking = reminder.booking
            if booking is None or booking.status == "CANCELLED":
                self.repo.mark(self.db, reminder, "FAILED", error="Booking cancelled")
                continue

            minutes_before = max(round((booking.start_time - now).total_seconds() / 60), 0)
            try:
                success, error = await self._deliver(reminder, minutes_before)
            except Exception as e:
                logger.error(f"❌ Reminder {reminder.id} failed: {e}")
                success, error = False, str(e)

            if success:
                self.repo.mark(self.db, reminder, "SENT", sent_at=now)
                processed += 1
            else:
                self.repo.mark(self.db, reminder, "FAILED", error=error)

        if due:
            logger.info(f"📧 Processed {processed}/{len(due)} due reminders")
        return processed

    async def retry_failed_reminders(self) -> int:
        """Retry reminders that failed in the last few minutes while the meeting is still ahead"""
        now = utc_now()
        failed = self.repo.get_recent_failed(
            self.db, now - timedelta(minutes=RETRY_WINDOW_MINUTES), now
        )
        retried = 0

        for reminder in failed:
            booking = reminder.booking
            if booking is None or booking.status == "CANCELLED" or booking.start_time <= now:
                continue

            minutes_before = round((booking.start_time - now).total_seconds() / 60)
            try:
                success, error = await self._deliver(reminder, minutes_before)
            except Exception as e:
                logger.error(f"❌ Reminder retry {reminder.id} failed: {e}")
                continue

            if success:
                self.repo.mark(self.db, reminder, "SENT", sent_at=now)
                retried += 1
            else:
                logger.warning(f"⚠️ Reminder retry {reminder.id} failed: {error}")

        return retried
