"""Analytics repository - Read-only queries over bookings and payments"""

from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from ...models import Booking, EventType, Payment


class AnalyticsRepository:
    """Repository for analytics queries"""

    @staticmethod
    def bookings_created_between(
        db: Session, user_id: str, start: datetime, end: datetime
    ) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.event_type), joinedload(Booking.payment))
            .filter(
                Booking.user_id == user_id,
                Booking.created_at >= start,
                Booking.created_at <= end,
            )
            .order_by(Booking.created_at.desc())
            .all()
        )

    @staticmethod
    def confirmed_bookings_starting_between(
        db: Session, user_id: str, start: datetime, end: datetime
    ) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(
                Booking.user_id == user_id,
                Booking.status == "CONFIRMED",
                Booking.start_time >= start,
                Booking.start_time <= end,
            )
            .all()
        )

    @staticmethod
    def event_types_for_user(db: Session, user_id: str) -> list[EventType]:
        return db.query(EventType).filter(EventType.user_id == user_id).order_by(EventType.created_at).all()

    @staticmethod
    def payments_between(db: Session, user_id: str, start: datetime, end: datetime) -> list[Payment]:
        return (
            db.query(Payment)
            .options(joinedload(Payment.booking).joinedload(Booking.event_type))
            .filter(
                Payment.user_id == user_id,
                Payment.created_at >= start,
                Payment.created_at <= end,
            )
            .all()
        )
