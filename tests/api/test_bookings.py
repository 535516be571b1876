"""Tests for the booking lifecycle: create, token lookup, reschedule and cancel"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from app.models import AuditLog, Booking, Payment, Reminder
from app.shared.dates import utc_now
from tests.conftest import auth_headers_for, next_weekday_at


def _iso(value) -> str:
    return value.isoformat() + "Z"


def _payload(event_type, start, minutes=30, **overrides):
    payload = {
        "eventTypeId": event_type.id,
        "startTime": _iso(start),
        "endTime": _iso(start + timedelta(minutes=minutes)),
        "guestName": "Jordan Guest",
        "guestEmail": "jordan@example.com",
        "guestTimezone": "America/New_York",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def mock_emails():
    with (
        patch("app.domain.bookings.tasks.send_booking_confirmation", new=AsyncMock()) as confirmation,
        patch("app.domain.bookings.tasks.send_host_notification", new=AsyncMock()) as host_notification,
        patch("app.domain.bookings.tasks.send_cancellation_email", new=AsyncMock()) as cancellation,
        patch("app.domain.bookings.tasks.send_reschedule_email", new=AsyncMock()) as reschedule,
    ):
        yield {
            "confirmation": confirmation,
            "host": host_notification,
            "cancellation": cancellation,
            "reschedule": reschedule,
        }


class TestCreateBooking:
    def test_creates_confirmed_booking_with_tokens(self, client, db, event_type, mock_emails):
        response = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(14)))

        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["status"] == "CONFIRMED"
        assert booking["rescheduleToken"]
        assert booking["cancelToken"]
        assert booking["rescheduleToken"] != booking["cancelToken"]
        assert booking["location"] == "Main office"

    def test_background_work_runs_after_response(self, client, db, event_type, mock_emails):
        booking_id = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(14))).json()[
            "booking"
        ]["id"]

        mock_emails["confirmation"].assert_awaited_once()
        mock_emails["host"].assert_awaited_once()
        assert db.query(Reminder).filter(Reminder.booking_id == booking_id).count() == 2
        assert db.query(AuditLog).filter(AuditLog.action == "BOOKING_CREATED").count() == 1

    def test_email_failure_does_not_fail_booking(self, client, event_type, mock_emails):
        mock_emails["confirmation"].side_effect = Exception("Email service not configured")

        response = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(14)))

        assert response.status_code == 201

    def test_video_event_gets_meeting_link(self, client, db, event_type, mock_emails):
        event_type.location_type = "VIDEO_GOOGLE_MEET"
        db.commit()

        booking = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(14))).json()["booking"]

        assert booking["meetingLink"].startswith("https://meet.google.com/")

    def test_direct_overlap_is_rejected(self, client, event_type, booking, mock_emails):
        response = client.post("/api/bookings", json=_payload(event_type, booking.start_time + timedelta(minutes=15)))

        assert response.status_code == 400
        assert response.json() == {"error": "This time slot is no longer available"}

    def test_back_to_back_is_allowed_without_buffers(self, client, event_type, booking, mock_emails):
        response = client.post("/api/bookings", json=_payload(event_type, booking.end_time))

        assert response.status_code == 201

    def test_buffer_conflict_is_rejected(self, client, db, event_type, booking, mock_emails):
        event_type.buffer_time_after = 15
        db.commit()

        response = client.post("/api/bookings", json=_payload(event_type, booking.end_time + timedelta(minutes=5)))

        assert response.status_code == 400
        assert response.json() == {"error": "This time slot conflicts with buffer time"}

    def test_cancelled_bookings_free_the_slot(self, client, db, event_type, booking, mock_emails):
        booking.status = "CANCELLED"
        db.commit()

        response = client.post("/api/bookings", json=_payload(event_type, booking.start_time))

        assert response.status_code == 201

    def test_minimum_notice(self, client, db, event_type, mock_emails):
        event_type.minimum_notice = 24 * 60
        db.commit()

        start = (utc_now() + timedelta(hours=2)).replace(microsecond=0)
        response = client.post("/api/bookings", json=_payload(event_type, start))

        assert response.status_code == 400
        assert response.json() == {"error": "Booking does not meet the minimum notice period"}

    def test_booking_window(self, client, event_type, mock_emails):
        response = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(10, days_ahead=90)))

        assert response.status_code == 400
        assert response.json() == {"error": "Booking is outside the allowed booking window"}

    def test_inactive_event_type(self, client, db, event_type, mock_emails):
        event_type.is_active = False
        db.commit()

        response = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(14)))

        assert response.status_code == 400
        assert response.json() == {"error": "This event type is not accepting bookings"}

    def test_unknown_event_type(self, client, event_type, mock_emails):
        payload = _payload(event_type, next_weekday_at(14), eventTypeId="missing")

        response = client.post("/api/bookings", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Event type not found"}

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"guestName": "   "}, "Name is required"),
            ({"guestEmail": "nope"}, "Invalid email address"),
            ({"notes": "x" * 501}, "Notes are too long"),
        ],
    )
    def test_validation_messages(self, client, event_type, overrides, message):
        response = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(14), **overrides))

        assert response.status_code == 400
        assert response.json() == {"error": message}

    def test_end_must_follow_start(self, client, event_type):
        response = client.post("/api/bookings", json=_payload(event_type, next_weekday_at(14), minutes=-30))

        assert response.status_code == 400
        assert response.json() == {"error": "End time must be after start time"}


class TestTokenLookup:
    def test_lookup_by_cancel_token(self, client, booking):
        response = client.get(f"/api/bookings/token/{booking.cancel_token}", params={"type": "cancel"})

        assert response.status_code == 200
        assert response.json()["booking"]["id"] == booking.id

    def test_token_type_must_match(self, client, booking):
        response = client.get(f"/api/bookings/token/{booking.cancel_token}", params={"type": "reschedule"})

        assert response.status_code == 404
        assert response.json() == {"error": "Booking not found or token invalid"}

    def test_invalid_token_type(self, client, booking):
        response = client.get(f"/api/bookings/token/{booking.cancel_token}", params={"type": "other"})

        assert response.status_code == 400

    def test_cancelled_booking(self, client, db, booking):
        booking.status = "CANCELLED"
        db.commit()

        response = client.get(f"/api/bookings/token/{booking.cancel_token}", params={"type": "cancel"})

        assert response.json() == {"error": "This booking has been cancelled"}

    def test_past_booking(self, client, db, booking):
        booking.start_time = utc_now() - timedelta(days=1)
        booking.end_time = booking.start_time + timedelta(minutes=30)
        db.commit()

        response = client.get(f"/api/bookings/token/{booking.cancel_token}", params={"type": "cancel"})

        assert response.json() == {"error": "This booking is in the past"}


class TestHostOperations:
    def test_list_requires_own_user_id(self, client, host, other_user, booking):
        own = client.get("/api/bookings", params={"userId": host.id}, headers=auth_headers_for(host))
        other = client.get("/api/bookings", params={"userId": host.id}, headers=auth_headers_for(other_user))

        assert [b["id"] for b in own.json()["bookings"]] == [booking.id]
        assert other.status_code == 403

    def test_get_booking_is_host_only(self, client, other_user, booking, auth_headers):
        assert client.get(f"/api/bookings/{booking.id}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/bookings/{booking.id}", headers=auth_headers_for(other_user)).status_code == 403
        assert client.get("/api/bookings/missing", headers=auth_headers).status_code == 404

    def test_host_marks_no_show(self, client, booking, auth_headers):
        response = client.patch(f"/api/bookings/{booking.id}", json={"status": "NO_SHOW"}, headers=auth_headers)

        assert response.json()["booking"]["status"] == "NO_SHOW"

    def test_host_cannot_set_arbitrary_status(self, client, booking, auth_headers):
        response = client.patch(f"/api/bookings/{booking.id}", json={"status": "CONFIRMED"}, headers=auth_headers)

        assert response.status_code == 400


class TestReschedule:
    def test_guest_reschedules_with_token(self, client, booking, mock_emails):
        new_start = booking.start_time + timedelta(hours=3)
        response = client.post(
            f"/api/bookings/{booking.id}/reschedule",
            json={
                "token": booking.reschedule_token,
                "startTime": _iso(new_start),
                "endTime": _iso(new_start + timedelta(minutes=30)),
            },
        )

        assert response.status_code == 200
        assert response.json()["booking"]["startTime"] == new_start.isoformat() + ".000Z"
        mock_emails["reschedule"].assert_awaited_once()

    def test_wrong_token_is_forbidden(self, client, booking):
        new_start = booking.start_time + timedelta(hours=3)
        response = client.post(
            f"/api/bookings/{booking.id}/reschedule",
            json={"token": "guess", "startTime": _iso(new_start), "endTime": _iso(new_start + timedelta(minutes=30))},
        )

        assert response.status_code == 403

    def test_cancel_token_cannot_reschedule(self, client, booking):
        new_start = booking.start_time + timedelta(hours=3)
        response = client.post(
            f"/api/bookings/{booking.id}/reschedule",
            json={
                "token": booking.cancel_token,
                "startTime": _iso(new_start),
                "endTime": _iso(new_start + timedelta(minutes=30)),
            },
        )

        assert response.status_code == 403

    def test_moving_within_own_slot_is_not_a_conflict(self, client, booking, auth_headers, mock_emails):
        new_start = booking.start_time + timedelta(minutes=15)
        response = client.post(
            f"/api/bookings/{booking.id}/reschedule",
            json={"startTime": _iso(new_start), "endTime": _iso(new_start + timedelta(minutes=30))},
            headers=auth_headers,
        )

        assert response.status_code == 200

    def test_cannot_reschedule_cancelled_booking(self, client, db, booking, auth_headers):
        booking.status = "CANCELLED"
        db.commit()
        new_start = booking.start_time + timedelta(hours=3)

        response = client.post(
            f"/api/bookings/{booking.id}/reschedule",
            json={"startTime": _iso(new_start), "endTime": _iso(new_start + timedelta(minutes=30))},
            headers=auth_headers,
        )

        assert response.status_code == 400


class TestCancel:
    def test_guest_cancels_with_token(self, client, db, booking, mock_emails):
        response = client.post(
            f"/api/bookings/{booking.id}/cancel", json={"token": booking.cancel_token, "reason": "Conflict"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["booking"]["status"] == "CANCELLED"
        assert body["booking"]["cancelledBy"] == "guest"
        assert body["booking"]["cancellationReason"] == "Conflict"
        assert body["refund"] is None
        mock_emails["cancellation"].assert_awaited_once()

    def test_host_cancel_is_attributed_to_host(self, client, booking, auth_headers, mock_emails):
        response = client.post(f"/api/bookings/{booking.id}/cancel", json={}, headers=auth_headers)

        assert response.json()["booking"]["cancelledBy"] == "host"

    def test_cancel_twice(self, client, booking, auth_headers, mock_emails):
        client.post(f"/api/bookings/{booking.id}/cancel", json={}, headers=auth_headers)
        response = client.post(f"/api/bookings/{booking.id}/cancel", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "This booking has been cancelled"}

    def test_anonymous_without_token_is_forbidden(self, client, booking):
        response = client.post(f"/api/bookings/{booking.id}/cancel", json={})

        assert response.status_code == 403

    def test_cancel_reports_refund_for_paid_booking(self, client, db, host, booking, auth_headers, mock_emails):
        db.add(Payment(booking_id=booking.id, user_id=host.id, amount=60.0, status="SUCCEEDED"))
        db.commit()

        refund = client.post(f"/api/bookings/{booking.id}/cancel", json={}, headers=auth_headers).json()["refund"]

        assert refund["percentage"] == 100
        assert refund["amount"] == 60.0

    def test_cancel_fails_pending_reminders(self, client, db, booking, auth_headers, mock_emails):
        db.add(Reminder(booking_id=booking.id, type="EMAIL", scheduled_for=booking.start_time - timedelta(hours=1)))
        db.commit()

        client.post(f"/api/bookings/{booking.id}/cancel", json={}, headers=auth_headers)

        db.expire_all()
        assert db.get(Booking, booking.id).status == "CANCELLED"
        assert {r.status for r in db.query(Reminder).filter(Reminder.booking_id == booking.id)} == {"FAILED"}
