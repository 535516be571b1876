"""Booking service - Business logic for creating, rescheduling and cancelling bookings"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...cache import invalidate_availability
from ...models import Booking, EventType, User
from ...security_utils import constant_time_compare, generate_secure_token
from ...services.video_service import create_meeting, get_location_type_label, is_video_conference
from ...shared.dates import parse_datetime, utc_now
from ..availability.slots import overlaps, widen
from ..notifications.service import NotificationService
from ..payments.service import PaymentService
from ..security.service import create_audit_log
from .repository import BookingRepository
from .schemas import (
    CancelBookingRequest,
    CreateBookingRequest,
    RescheduleBookingRequest,
    UpdateBookingRequest,
)

logger = logging.getLogger(__name__)

TOKEN_TYPES = ("reschedule", "cancel")


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    # ========================================================================
    # CONFLICT CHECKS
    # ========================================================================

    def _ensure_slot_free(
        self,
        event_type: EventType,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        """Reject direct overlaps first, then overlaps once buffers are applied"""
        if self.repo.find_overlapping(self.db, event_type.user_id, start, end, exclude_booking_id):
            raise HTTPException(status_code=400, detail="This time slot is no longer available")

        new_start, new_end = widen(
            start, end, event_type.buffer_time_before, event_type.buffer_time_after
        )
        nearby = self.repo.list_active_between(
            self.db,
            event_type.user_id,
            new_start - timedelta(days=1),
            new_end + timedelta(days=1),
            exclude_booking_id,
        )
        for other in nearby:
            busy_start, busy_end = widen(
                other.start_time,
                other.end_time,
                other.event_type.buffer_time_before if other.event_type else 0,
                other.event_type.buffer_time_after if other.event_type else 0,
            )
            if overlaps(new_start, new_end, busy_start, busy_end):
                raise HTTPException(
                    status_code=400, detail="This time slot conflicts with buffer time"
                )

    @staticmethod
    def _ensure_booking_rules(event_type: EventType, start: datetime) -> None:
        now = utc_now()
        if start < now + timedelta(minutes=event_type.minimum_notice or 0):
            raise HTTPException(
                status_code=400, detail="Booking does not meet the minimum notice period"
            )
        if start > now + timedelta(days=event_type.max_booking_window or 60):
            raise HTTPException(
                status_code=400, detail="Booking is outside the allowed booking window"
            )

    # ========================================================================
    # CREATE
    # ========================================================================

    async def create_booking(self, data: CreateBookingRequest, request: Optional[Request] = None) -> Booking:
        """
        Book a slot with a host.

        Side effects that talk to guests (emails, SMS, reminders) are left to
        the caller's background tasks; only the video meeting is created here
        so its link can be stored on the booking.
        """
        event_type = self.db.get(EventType, data.eventTypeId)
        if not event_type:
            raise HTTPException(status_code=400, detail="Event type not found")
        if not event_type.is_active:
            raise HTTPException(status_code=400, detail="This event type is not accepting bookings")

        start = parse_datetime(data.startTime)
        end = parse_datetime(data.endTime)

        self._ensure_booking_rules(event_type, start)
        self._ensure_slot_free(event_type, start, end)

        location = event_type.location_details
        meeting_link = None
        meeting_password = None
        if is_video_conference(event_type.location_type):
            try:
                meeting = await create_meeting(event_type.location_type, event_type.title, start, end)
                meeting_link = meeting["meetingLink"]
                meeting_password = meeting.get("meetingPassword")
                location = get_location_type_label(event_type.location_type)
            except Exception as e:
                logger.warning(f"⚠️ Video meeting creation failed for event type {event_type.id}: {e}")

        booking = self.repo.create(
            self.db,
            event_type_id=event_type.id,
            user_id=event_type.user_id,
            guest_name=data.guestName.strip(),
            guest_email=data.guestEmail,
            guest_phone=data.guestPhone,
            guest_timezone=data.guestTimezone,
            start_time=start,
            end_time=end,
            status="CONFIRMED",
            location=location,
            meeting_link=meeting_link,
            meeting_password=meeting_password,
            custom_responses=data.customResponses,
            notes=data.notes,
            reschedule_token=generate_secure_token(),
            cancel_token=generate_secure_token(),
        )
        invalidate_availability(event_type.user_id)

        create_audit_log(
            self.db,
            "BOOKING_CREATED",
            "booking",
            user_id=event_type.user_id,
            resource_id=booking.id,
            request=request,
            metadata={"eventTypeId": event_type.id, "guestEmail": booking.guest_email},
        )
        logger.info(f"✅ Booking {booking.id} created for host {event_type.user_id}")
        return booking

    # ========================================================================
    # HOST OPERATIONS
    # ========================================================================

    def list_bookings(
        self,
        user_id: Optional[str],
        current_user: User,
        status: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> list[Booking]:
        if not user_id:
            raise HTTPException(status_code=400, detail="userId is required")
        if user_id != current_user.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        try:
            start = parse_datetime(start_date) if start_date else None
            end = parse_datetime(end_date) if end_date else None
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date format") from e
        return self.repo.list_for_user(self.db, user_id, status, start, end)

    def _get_existing(self, booking_id: str) -> Booking:
        booking = self.repo.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def get_booking(self, booking_id: str, current_user: User) -> Booking:
        booking = self._get_existing(booking_id)
        if booking.user_id != current_user.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        return booking

    def update_booking(
        self, booking_id: str, data: UpdateBookingRequest, current_user: User
    ) -> Booking:
        booking = self.get_booking(booking_id, current_user)
        updates = data.model_dump(exclude_unset=True)
        if not updates:
            return booking
        return self.repo.update(self.db, booking, **updates)

    @staticmethod
    def _authorize(booking: Booking, current_user: Optional[User], token: Optional[str], token_type: str) -> bool:
        """Allow the host, or a guest presenting the booking's token; returns True for the host"""
        if current_user is not None and booking.user_id == current_user.id:
            return True
        expected = booking.reschedule_token if token_type == "reschedule" else booking.cancel_token
        if token and constant_time_compare(token, expected):
            return False
        raise HTTPException(status_code=403, detail="Forbidden")

    # ========================================================================
    # RESCHEDULE / CANCEL
    # ========================================================================

    def reschedule_booking(
        self,
        booking_id: str,
        data: RescheduleBookingRequest,
        current_user: Optional[User] = None,
    ) -> tuple[Booking, datetime]:
        """Move a booking; returns it together with its previous start time"""
        booking = self._get_existing(booking_id)
        self._authorize(booking, current_user, data.token, "reschedule")
        if booking.status == "CANCELLED":
            raise HTTPException(status_code=400, detail="Cannot reschedule a cancelled booking")

        start = parse_datetime(data.startTime)
        end = parse_datetime(data.endTime)
        event_type = booking.event_type
        self._ensure_slot_free(event_type, start, end, exclude_booking_id=booking.id)

        previous_start = booking.start_time
        booking = self.repo.update(self.db, booking, start_time=start, end_time=end)
        invalidate_availability(booking.user_id)

        logger.info(f"🔁 Booking {booking.id} moved from {previous_start} to {start}")
        return booking, previous_start

    def cancel_booking(
        self,
        booking_id: str,
        data: CancelBookingRequest,
        current_user: Optional[User] = None,
        request: Optional[Request] = None,
    ) -> tuple[Booking, Optional[dict]]:
        """Cancel a booking; returns it with the refund owed under the cancellation policy"""
        booking = self._get_existing(booking_id)
        is_host = self._authorize(booking, current_user, data.token, "cancel")
        if booking.status == "CANCELLED":
            raise HTTPException(status_code=400, detail="This booking has been cancelled")

        booking = self.repo.update(
            self.db,
            booking,
            status="CANCELLED",
            cancellation_reason=data.reason,
            cancelled_by="host" if is_host else "guest",
            cancelled_at=utc_now(),
        )
        invalidate_availability(booking.user_id)

        try:
            NotificationService(self.db).cancel_reminders(booking.id)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to cancel reminders for booking {booking.id}: {e}")

        refund = PaymentService(self.db).get_refund_for_cancellation(booking)

        create_audit_log(
            self.db,
            "BOOKING_CANCELLED",
            "booking",
            user_id=booking.user_id,
            resource_id=booking.id,
            request=request,
            metadata={"cancelledBy": booking.cancelled_by, "reason": data.reason},
        )
        logger.info(f"🚫 Booking {booking.id} cancelled by {booking.cancelled_by}")
        return booking, refund

    # ========================================================================
    # TOKEN LOOKUP
    # ========================================================================

    def get_by_token(self, token: str, token_type: Optional[str]) -> Booking:
        if token_type not in TOKEN_TYPES:
            raise HTTPException(status_code=400, detail="Invalid token type")

        booking = self.repo.get_by_token(self.db, token, token_type)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found or token invalid")
        if booking.status == "CANCELLED":
            raise HTTPException(status_code=400, detail="This booking has been cancelled")
        if booking.start_time < utc_now():
            raise HTTPException(status_code=400, detail="This booking is in the past")
        return booking
