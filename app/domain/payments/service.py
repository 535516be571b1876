"""Payment service - Stripe payment intents, refunds, webhooks and refund policy"""

import logging
from datetime import datetime
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from ...models import Booking, EventType, Payment, User
from ...shared.dates import parse_datetime, utc_now
from .repository import PaymentRepository
from .schemas import CreatePaymentIntentRequest, RefundRequest

logger = logging.getLogger(__name__)

REFUNDABLE_STATUSES = ("SUCCEEDED", "PARTIALLY_REFUNDED")

FULL_REFUND_HOURS = 24
PARTIAL_REFUND_HOURS = 12
PARTIAL_REFUND_PERCENTAGE = 50


def get_stripe_client():
    if not STRIPE_SECRET_KEY:
        raise HTTPException(status_code=500, detail="Payment processing is not configured")
    stripe.api_key = STRIPE_SECRET_KEY
    return stripe


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


# ============================================================================
# CANCELLATION POLICY
# ============================================================================


def calculate_refund_amount(payment: Payment, booking_start: datetime, now: Optional[datetime] = None) -> dict:
    """
    Refund owed when a paid booking is cancelled.

    Full refund 24h or more before the start, half from 12h, nothing after.
    """
    now = now or utc_now()
    hours_until = (booking_start - now).total_seconds() / 3600

    if hours_until >= FULL_REFUND_HOURS:
        percentage = 100
    elif hours_until >= PARTIAL_REFUND_HOURS:
        percentage = PARTIAL_REFUND_PERCENTAGE
    else:
        percentage = 0

    return {
        "amount": round(payment.amount * percentage / 100, 2),
        "percentage": percentage,
        "currency": payment.currency,
    }


def get_cancellation_policy_text() -> str:
    return (
        f"Full refund if cancelled at least {FULL_REFUND_HOURS} hours before the meeting. "
        f"{PARTIAL_REFUND_PERCENTAGE}% refund if cancelled at least {PARTIAL_REFUND_HOURS} hours before. "
        f"No refund for cancellations less than {PARTIAL_REFUND_HOURS} hours before the meeting."
    )


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository()

    # ========================================================================
    # PAYMENT INTENTS
    # ========================================================================

    def create_payment_intent(self, data: CreatePaymentIntentRequest) -> dict:
        event_type = self.db.get(EventType, data.eventTypeId)
        if not event_type:
            raise HTTPException(status_code=404, detail="Event type not found")

        client = get_stripe_client()
        metadata = {
            "eventTypeId": event_type.id,
            "guestEmail": data.guestEmail,
            "guestName": data.guestName,
            **{k: str(v) for k, v in (data.metadata or {}).items()},
        }
        try:
            intent = client.PaymentIntent.create(
                amount=to_minor_units(data.amount),
                currency=data.currency.lower(),
                automatic_payment_methods={"enabled": True},
                receipt_email=data.guestEmail,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe PaymentIntent creation failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to create payment intent") from e

        payment = self.repo.create(
            self.db,
            user_id=event_type.user_id,
            amount=data.amount,
            currency=data.currency,
            status="PENDING",
            stripe_payment_intent_id=intent.id,
            guest_email=data.guestEmail,
            guest_name=data.guestName,
            payment_metadata=data.metadata,
        )
        logger.info(f"💳 Payment intent {intent.id} created for event type {event_type.id}")
        return {"clientSecret": intent.client_secret, "paymentId": payment.id}

    # ========================================================================
    # REFUNDS
    # ========================================================================

    def process_refund(self, data: RefundRequest, user: User) -> Payment:
        payment = self.repo.get_by_booking(self.db, data.bookingId)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if payment.user_id != user.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        if payment.status not in REFUNDABLE_STATUSES:
            raise HTTPException(status_code=400, detail="Payment cannot be refunded")

        already_refunded = payment.refund_amount or 0
        remaining = round(payment.amount - already_refunded, 2)
        amount = data.amount if data.amount is not None else remaining
        if amount > remaining:
            raise HTTPException(status_code=400, detail="Refund amount exceeds payment amount")

        client = get_stripe_client()
        refund_args = {
            "payment_intent": payment.stripe_payment_intent_id,
            "amount": to_minor_units(amount),
        }
        if data.reason:
            refund_args["reason"] = "requested_by_customer"
            refund_args["metadata"] = {"reason": data.reason}
        try:
            refund = client.Refund.create(**refund_args)
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe refund failed for payment {payment.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to process refund") from e

        total_refunded = round(already_refunded + amount, 2)
        status = "REFUNDED" if total_refunded >= payment.amount else "PARTIALLY_REFUNDED"
        payment = self.repo.update(
            self.db, payment, status=status, stripe_refund_id=refund.id, refund_amount=total_refunded
        )
        logger.info(f"✅ Refund {refund.id} ({status}) for payment {payment.id}")
        return payment

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_payments(
        self,
        user_id: Optional[str],
        user: User,
        status: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> list[Payment]:
        if not user_id:
            raise HTTPException(status_code=400, detail="userId is required")
        if user_id != user.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        try:
            start = parse_datetime(start_date) if start_date else None
            end = parse_datetime(end_date) if end_date else None
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date format") from e
        return self.repo.list_for_user(self.db, user.id, status, start, end)

    def get_payment(self, payment_id: str, user: User) -> Payment:
        payment = self.repo.get_by_id(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if payment.user_id != user.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        return payment

    def get_refund_for_cancellation(self, booking: Booking) -> Optional[dict]:
        payment = self.repo.get_by_booking(self.db, booking.id)
        if not payment or payment.status != "SUCCEEDED":
            return None
        refund = calculate_refund_amount(payment, booking.start_time)
        refund["policy"] = get_cancellation_policy_text()
        return refund

    # ========================================================================
    # WEBHOOKS
    # ========================================================================

    @staticmethod
    def construct_event(payload: bytes, signature: str):
        """
        Verify a Stripe webhook payload.

        Raises:
            HTTPException: 400 when the signature does not verify, 500 when no
            webhook secret is configured
        """
        if not STRIPE_WEBHOOK_SECRET:
            logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
            raise HTTPException(status_code=500, detail="Webhook secret not configured")
        try:
            return stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"⚠️ Stripe webhook signature verification failed: {e}")
            raise HTTPException(status_code=400, detail="Invalid signature") from e

    def handle_event(self, event) -> None:
        event_type = event["type"]
        obj = event["data"]["object"]
        logger.info(f"📨 Stripe webhook: {event_type}")

        if event_type == "payment_intent.succeeded":
            self._payment_succeeded(obj)
        elif event_type == "payment_intent.payment_failed":
            self._payment_failed(obj)
        elif event_type == "charge.refunded":
            self._charge_refunded(obj)
        else:
            logger.info(f"ℹ️ Unhandled Stripe event type: {event_type}")

    def _payment_succeeded(self, intent) -> None:
        payment = self.repo.get_by_intent(self.db, intent["id"])
        if not payment:
            logger.warning(f"⚠️ No payment for intent {intent['id']}")
            return

        updates = {"status": "SUCCEEDED"}
        booking_id = (intent.get("metadata") or {}).get("bookingId")
        if booking_id and self.db.get(Booking, booking_id):
            updates["booking_id"] = booking_id
        self.repo.update(self.db, payment, **updates)
        logger.info(f"✅ Payment {payment.id} succeeded")

    def _payment_failed(self, intent) -> None:
        payment = self.repo.get_by_intent(self.db, intent["id"])
        if payment:
            self.repo.update(self.db, payment, status="FAILED")
            logger.warning(f"⚠️ Payment {payment.id} failed")

    def _charge_refunded(self, charge) -> None:
        intent_id = charge.get("payment_intent")
        payment = self.repo.get_by_intent(self.db, intent_id) if intent_id else None
        if not payment:
            logger.warning(f"⚠️ No payment for refunded charge {charge.get('id')}")
            return

        amount_refunded = charge.get("amount_refunded") or 0
        amount = charge.get("amount") or 0
        status = "REFUNDED" if amount_refunded >= amount else "PARTIALLY_REFUNDED"
        self.repo.update(self.db, payment, status=status, refund_amount=amount_refunded / 100)
        logger.info(f"✅ Payment {payment.id} marked {status}")
