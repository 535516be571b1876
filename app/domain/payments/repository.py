"""Payment repository - Database operations for payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Payment


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_id(db: Session, payment_id: str) -> Optional[Payment]:
        return (
            db.query(Payment)
            .options(joinedload(Payment.booking))
            .filter(Payment.id == payment_id)
            .first()
        )

    @staticmethod
    def get_by_booking(db: Session, booking_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.booking_id == booking_id).first()

    @staticmethod
    def get_by_intent(db: Session, intent_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.stripe_payment_intent_id == intent_id).first()

    @staticmethod
    def list_for_user(
        db: Session,
        user_id: str,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[Payment]:
        query = (
            db.query(Payment).options(joinedload(Payment.booking)).filter(Payment.user_id == user_id)
        )
        if status:
            query = query.filter(Payment.status == status)
        if start_date:
            query = query.filter(Payment.created_at >= start_date)
        if end_date:
            query = query.filter(Payment.created_at <= end_date)
        return query.order_by(Payment.created_at.desc()).all()

    @staticmethod
    def create(db: Session, **data) -> Payment:
        payment = Payment(**data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def update(db: Session, payment: Payment, **updates) -> Payment:
        for key, value in updates.items():
            setattr(payment, key, value)
        db.commit()
        db.refresh(payment)
        return payment
