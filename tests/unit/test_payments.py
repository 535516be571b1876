"""Tests for the cancellation refund policy"""

from datetime import datetime, timedelta

import pytest

from app.domain.payments.service import (
    PaymentService,
    calculate_refund_amount,
    get_cancellation_policy_text,
    to_minor_units,
)
from app.models import Payment

NOW = datetime(2025, 3, 10, 12, 0)


@pytest.mark.parametrize(
    "hours_before, percentage, amount",
    [
        (48, 100, 80.0),
        (24, 100, 80.0),
        (18, 50, 40.0),
        (12, 50, 40.0),
        (6, 0, 0.0),
        (-1, 0, 0.0),
    ],
)
def test_refund_tiers(hours_before, percentage, amount):
    payment = Payment(amount=80.0, currency="EUR")
    refund = calculate_refund_amount(payment, NOW + timedelta(hours=hours_before), now=NOW)
    assert refund == {"amount": amount, "percentage": percentage, "currency": "EUR"}


def test_policy_text_mentions_thresholds():
    text = get_cancellation_policy_text()
    assert "24 hours" in text
    assert "50%" in text


def test_to_minor_units_rounds():
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(0.1 + 0.2) == 30


def test_no_refund_without_successful_payment(db, booking):
    assert PaymentService(db).get_refund_for_cancellation(booking) is None


def test_refund_for_paid_booking_includes_policy(db, host, booking):
    db.add(Payment(booking_id=booking.id, user_id=host.id, amount=50.0, currency="USD", status="SUCCEEDED"))
    db.commit()

    refund = PaymentService(db).get_refund_for_cancellation(booking)

    assert refund["percentage"] == 100
    assert refund["amount"] == 50.0
    assert refund["policy"] == get_cancellation_policy_text()
