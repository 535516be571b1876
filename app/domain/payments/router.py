"""Payment router - Payment intents, refunds, payment history and Stripe webhooks"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import preset_rate_limiter
from .schemas import CreatePaymentIntentRequest, RefundRequest, payment_to_response
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])
webhooks_router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])

booking_rate_limit = preset_rate_limiter("booking")


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


@router.post("/create-intent")
async def create_payment_intent(
    data: CreatePaymentIntentRequest,
    service: PaymentService = Depends(get_payment_service),
    _: None = Depends(booking_rate_limit),
):
    """Public: guests pay before their booking is created"""
    return service.create_payment_intent(data)


@router.post("/refund")
async def refund_payment(
    data: RefundRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.process_refund(data, current_user)
    return {"payment": payment_to_response(payment)}


@router.get("")
async def list_payments(
    userId: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payments = service.list_payments(userId, current_user, status, startDate, endDate)
    return {"payments": [payment_to_response(p, include_booking=True) for p in payments]}


@router.get("/{payment_id}")
async def get_payment(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.get_payment(payment_id, current_user)
    return {"payment": payment_to_response(payment, include_booking=True)}


# ============================================================================
# WEBHOOKS
# ============================================================================


@webhooks_router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    service: PaymentService = Depends(get_payment_service),
):
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    payload = await request.body()
    event = service.construct_event(payload, stripe_signature)

    try:
        service.handle_event(event)
    except Exception as e:
        logger.error(f"❌ Stripe webhook handler failed: {e}")
        service.db.rollback()
        raise HTTPException(status_code=500, detail="Webhook handler failed") from e

    return {"received": True}
