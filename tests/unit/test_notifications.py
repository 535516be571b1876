"""Tests for reminder scheduling and delivery"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from app.domain.notifications.service import NotificationService
from app.email_service import format_time_until, generate_ics
from app.models import NotificationSetting, Reminder
from app.shared.dates import utc_now


def test_default_timing_creates_email_reminders(db, booking):
    created = NotificationService(db).schedule_reminders(booking)

    reminders = db.query(Reminder).filter(Reminder.booking_id == booking.id).all()
    assert created == 2
    assert {r.type for r in reminders} == {"EMAIL"}
    assert sorted(booking.start_time - r.scheduled_for for r in reminders) == [
        timedelta(minutes=60),
        timedelta(minutes=1440),
    ]


def test_sms_reminders_need_a_phone_number(db, host, booking):
    db.add(
        NotificationSetting(
            user_id=host.id,
            email_enabled=False,
            sms_enabled=True,
            phone_number="+14155552671",
            reminder_timing=[30],
        )
    )
    db.commit()

    NotificationService(db).schedule_reminders(booking)

    reminders = db.query(Reminder).filter(Reminder.booking_id == booking.id).all()
    assert [r.type for r in reminders] == ["SMS"]


def test_reminders_in_the_past_are_skipped(db, booking):
    booking.start_time = utc_now() + timedelta(minutes=30)
    booking.end_time = booking.start_time + timedelta(minutes=30)
    db.commit()

    assert NotificationService(db).schedule_reminders(booking) == 0


def test_cancel_reminders_fails_pending(db, booking):
    service = NotificationService(db)
    service.schedule_reminders(booking)

    assert service.cancel_reminders(booking.id) == 2
    statuses = {r.status for r in db.query(Reminder).filter(Reminder.booking_id == booking.id)}
    assert statuses == {"FAILED"}


def test_process_pending_sends_due_email_reminders(db, booking):
    db.add(Reminder(booking_id=booking.id, type="EMAIL", scheduled_for=utc_now() - timedelta(minutes=1)))
    db.commit()

    with patch(
        "app.domain.notifications.service.send_reminder_email", new=AsyncMock(return_value={"id": "email_1"})
    ) as send:
        processed = asyncio.run(NotificationService(db).process_pending_reminders())

    assert processed == 1
    send.assert_awaited_once()
    reminder = db.query(Reminder).filter(Reminder.booking_id == booking.id).one()
    assert reminder.status == "SENT"
    assert reminder.sent_at is not None


def test_process_pending_fails_reminders_of_cancelled_bookings(db, booking):
    booking.status = "CANCELLED"
    db.add(Reminder(booking_id=booking.id, type="EMAIL", scheduled_for=utc_now() - timedelta(minutes=1)))
    db.commit()

    with patch("app.domain.notifications.service.send_reminder_email", new=AsyncMock()) as send:
        processed = asyncio.run(NotificationService(db).process_pending_reminders())

    assert processed == 0
    send.assert_not_awaited()
    reminder = db.query(Reminder).filter(Reminder.booking_id == booking.id).one()
    assert reminder.status == "FAILED"
    assert reminder.error == "Booking cancelled"


def test_format_time_until():
    assert format_time_until(1440) == "1 day"
    assert format_time_until(120) == "2 hours"
    assert format_time_until(45) == "45 minutes"


def test_ics_invite_has_event_and_alarm(db, host, event_type, booking):
    ics = generate_ics(booking, event_type, host)

    assert ics.startswith("BEGIN:VCALENDAR\r\n")
    assert "BEGIN:VEVENT" in ics
    assert "TRIGGER:-PT15M" in ics
    assert f"mailto:{booking.guest_email}" in ics
