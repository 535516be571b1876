"""Tests for payment intents, refunds and Stripe webhooks"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from app.domain.payments.service import PaymentService
from app.models import Payment
from tests.conftest import auth_headers_for


@pytest.fixture
def payment(db, host, booking):
    payment = Payment(
        booking_id=booking.id,
        user_id=host.id,
        amount=50.0,
        status="SUCCEEDED",
        stripe_payment_intent_id="pi_123",
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


@pytest.fixture
def stripe_client():
    client = MagicMock()
    client.PaymentIntent.create.return_value = SimpleNamespace(id="pi_new", client_secret="pi_new_secret")
    client.Refund.create.return_value = SimpleNamespace(id="re_123")
    with patch("app.domain.payments.service.get_stripe_client", return_value=client):
        yield client


def _webhook(client, event):
    with patch.object(PaymentService, "construct_event", return_value=event):
        return client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=sig"})


def test_create_intent_without_stripe(client, event_type):
    response = client.post(
        "/api/payments/create-intent",
        json={"eventTypeId": event_type.id, "amount": 25, "guestEmail": "g@example.com", "guestName": "G"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Payment processing is not configured"}


def test_create_intent_records_pending_payment(client, db, event_type, stripe_client):
    response = client.post(
        "/api/payments/create-intent",
        json={"eventTypeId": event_type.id, "amount": 25.5, "guestEmail": "g@example.com", "guestName": "G"},
    )

    assert response.json()["clientSecret"] == "pi_new_secret"
    assert stripe_client.PaymentIntent.create.call_args.kwargs["amount"] == 2550
    stored = db.get(Payment, response.json()["paymentId"])
    assert stored.status == "PENDING"
    assert stored.stripe_payment_intent_id == "pi_new"


def test_partial_refund(client, payment, auth_headers, stripe_client):
    response = client.post(
        "/api/payments/refund", json={"bookingId": payment.booking_id, "amount": 20}, headers=auth_headers
    )

    assert response.json()["payment"]["status"] == "PARTIALLY_REFUNDED"
    assert stripe_client.Refund.create.call_args.kwargs["amount"] == 2000


def test_refund_cannot_exceed_payment(client, payment, auth_headers, stripe_client):
    response = client.post(
        "/api/payments/refund", json={"bookingId": payment.booking_id, "amount": 80}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Refund amount exceeds payment amount"}


def test_partial_refunds_accumulate(client, payment, auth_headers, stripe_client):
    def refund(amount):
        return client.post(
            "/api/payments/refund", json={"bookingId": payment.booking_id, "amount": amount}, headers=auth_headers
        )

    first = refund(30).json()["payment"]
    assert (first["status"], first["refundAmount"]) == ("PARTIALLY_REFUNDED", 30.0)

    over = refund(30)
    assert over.status_code == 400
    assert over.json() == {"error": "Refund amount exceeds payment amount"}

    last = refund(20).json()["payment"]
    assert (last["status"], last["refundAmount"]) == ("REFUNDED", 50.0)
    assert stripe_client.Refund.create.call_count == 2


def test_refund_defaults_to_remaining_amount(client, db, payment, auth_headers, stripe_client):
    payment.status = "PARTIALLY_REFUNDED"
    payment.refund_amount = 15.0
    db.commit()

    response = client.post("/api/payments/refund", json={"bookingId": payment.booking_id}, headers=auth_headers)

    assert response.json()["payment"]["status"] == "REFUNDED"
    assert stripe_client.Refund.create.call_args.kwargs["amount"] == 3500


def test_refund_is_host_only(client, payment, other_user, stripe_client):
    response = client.post(
        "/api/payments/refund", json={"bookingId": payment.booking_id}, headers=auth_headers_for(other_user)
    )

    assert response.status_code == 403


def test_webhook_requires_signature(client):
    response = client.post("/api/webhooks/stripe", content=b"{}")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing stripe-signature header"}


def test_webhook_needs_configured_secret(client):
    response = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=sig"})

    assert response.status_code == 500
    assert response.json() == {"error": "Webhook secret not configured"}


def test_webhook_rejects_bad_signature(client, monkeypatch):
    monkeypatch.setattr("app.domain.payments.service.STRIPE_WEBHOOK_SECRET", "whsec_test")

    response = client.post("/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=1,v1=bad"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}


def test_webhook_marks_payment_succeeded(client, db, host, booking):
    db.add(Payment(user_id=host.id, amount=50.0, status="PENDING", stripe_payment_intent_id="pi_456"))
    db.commit()

    response = _webhook(
        client,
        {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_456", "metadata": {"bookingId": booking.id}}},
        },
    )

    assert response.json() == {"received": True}
    db.expire_all()
    stored = db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_456").one()
    assert stored.status == "SUCCEEDED"
    assert stored.booking_id == booking.id


def test_webhook_records_refunded_charge(client, db, payment):
    _webhook(
        client,
        {
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_1", "payment_intent": "pi_123", "amount": 5000, "amount_refunded": 5000}},
        },
    )

    db.expire_all()
    stored = db.get(Payment, payment.id)
    assert stored.status == "REFUNDED"
    assert stored.refund_amount == 50.0


def test_unhandled_webhook_event_is_acknowledged(client):
    response = _webhook(client, {"type": "customer.created", "data": {"object": {}}})

    assert response.json() == {"received": True}
