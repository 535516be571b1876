"""Tests for analytics aggregation and CSV export"""

from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.domain.analytics.service import EXPORT_COLUMNS, AnalyticsService, rows_to_csv
from app.models import Booking, Payment


def test_csv_of_no_rows_is_a_message():
    assert rows_to_csv([]) == "No data to export"


def test_csv_quotes_fields_and_uses_crlf():
    row = {column: "" for column in EXPORT_COLUMNS}
    row.update(bookingId="b1", guestName='Smith, "Jo"')
    lines = rows_to_csv([row]).split("\r\n")
    assert lines[0] == ",".join(EXPORT_COLUMNS)
    assert lines[1].startswith('b1,,"Smith, ""Jo"""')


def test_resolve_range_requires_both_dates_when_asked():
    with pytest.raises(HTTPException) as exc:
        AnalyticsService.resolve_range("2025-01-01", None, required=True)
    assert exc.value.detail == "startDate and endDate are required"


def test_resolve_range_defaults_to_last_thirty_days():
    start, end, start_day, end_day = AnalyticsService.resolve_range(None, None)
    assert (end_day - start_day).days == 30
    assert start < end


def _add_booking(db, host, event_type, status):
    booking = Booking(
        event_type_id=event_type.id,
        user_id=host.id,
        guest_name="Guest",
        guest_email="guest@example.com",
        start_time=event_type.created_at + timedelta(days=3),
        end_time=event_type.created_at + timedelta(days=3, minutes=30),
        status=status,
    )
    db.add(booking)
    db.commit()
    return booking


def test_booking_metrics_rates(db, host, event_type):
    for status in ("CONFIRMED", "CONFIRMED", "CANCELLED", "NO_SHOW"):
        _add_booking(db, host, event_type, status)

    metrics = AnalyticsService(db).get_booking_metrics(host)

    assert metrics["totalBookings"] == 4
    assert metrics["confirmedBookings"] == 2
    assert metrics["cancellationRate"] == 25.0
    assert metrics["noShowRate"] == 25.0


def test_revenue_groups_succeeded_payments_by_event_type(db, host, event_type):
    paid = _add_booking(db, host, event_type, "CONFIRMED")
    refunded = _add_booking(db, host, event_type, "CANCELLED")
    db.add_all(
        [
            Payment(booking_id=paid.id, user_id=host.id, amount=40.0, status="SUCCEEDED"),
            Payment(
                booking_id=refunded.id, user_id=host.id, amount=40.0, status="REFUNDED", refund_amount=40.0
            ),
        ]
    )
    db.commit()

    revenue = AnalyticsService(db).get_revenue_metrics(host)

    assert revenue["totalRevenue"] == 40.0
    assert revenue["refundedAmount"] == 40.0
    assert revenue["revenueByEventType"] == [
        {"eventTypeId": event_type.id, "eventTypeName": "Intro Call", "revenue": 40.0, "bookingCount": 1}
    ]
