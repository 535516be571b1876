"""Booking repository - Database operations for bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Booking

ACTIVE_STATUSES = ("PENDING", "CONFIRMED")


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_by_id(db: Session, booking_id: str) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.event_type), joinedload(Booking.payment))
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def get_by_token(db: Session, token: str, token_type: str) -> Optional[Booking]:
        column = Booking.reschedule_token if token_type == "reschedule" else Booking.cancel_token
        return db.query(Booking).filter(column == token).first()

    @staticmethod
    def list_for_user(
        db: Session,
        user_id: str,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[Booking]:
        query = (
            db.query(Booking)
            .options(joinedload(Booking.event_type))
            .filter(Booking.user_id == user_id)
        )
        if status:
            query = query.filter(Booking.status == status)
        if start_date:
            query = query.filter(Booking.start_time >= start_date)
        if end_date:
            query = query.filter(Booking.start_time <= end_date)
        return query.order_by(Booking.start_time.desc()).all()

    @staticmethod
    def find_overlapping(
        db: Session,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> list[Booking]:
        """Active bookings of a host that collide with [start, end)"""
        query = db.query(Booking).filter(
            Booking.user_id == user_id,
            Booking.status.in_(ACTIVE_STATUSES),
            or_(
                and_(Booking.start_time <= start, Booking.end_time > start),
                and_(Booking.start_time < end, Booking.end_time >= end),
                and_(Booking.start_time >= start, Booking.end_time <= end),
            ),
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    @staticmethod
    def list_active_between(
        db: Session,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> list[Booking]:
        """Active bookings touching a time range, with their event types loaded"""
        query = (
            db.query(Booking)
            .options(joinedload(Booking.event_type))
            .filter(
                Booking.user_id == user_id,
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.start_time < end,
                Booking.end_time > start,
            )
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    @staticmethod
    def count_active_since(db: Session, user_id: str, since: datetime) -> int:
        return (
            db.query(Booking)
            .filter(
                Booking.user_id == user_id,
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.created_at >= since,
            )
            .count()
        )

    @staticmethod
    def create(db: Session, **data) -> Booking:
        booking = Booking(**data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def update(db: Session, booking: Booking, **updates) -> Booking:
        for key, value in updates.items():
            setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking
