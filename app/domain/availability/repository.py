"""Availability repository - Database operations for schedules and date overrides"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import MEDIUM, cached, weekly_schedule_key
from ...models import Availability, DateOverride
from .slots import time_to_minutes


@cached("availability", MEDIUM, key_builder=lambda db, user_id: weekly_schedule_key(user_id))
def load_weekly_schedule(db: Session, user_id: str) -> list[dict]:
    """Weekly schedule as plain dicts, cached until the schedule changes"""
    return [
        {"dayOfWeek": row.day_of_week, "startTime": row.start_time, "endTime": row.end_time}
        for row in AvailabilityRepository.get_schedule(db, user_id)
    ]


class AvailabilityRepository:
    """Repository for availability database operations"""

    @staticmethod
    def get_schedule(db: Session, user_id: str) -> list[Availability]:
        rows = db.query(Availability).filter(Availability.user_id == user_id).all()
        return sorted(rows, key=lambda a: (a.day_of_week, time_to_minutes(a.start_time)))

    @staticmethod
    def replace_schedule(db: Session, user_id: str, items: list[dict]) -> list[Availability]:
        """Swap the whole weekly schedule in one transaction"""
        try:
            db.query(Availability).filter(Availability.user_id == user_id).delete(
                synchronize_session=False
            )
            for item in items:
                db.add(Availability(user_id=user_id, **item))
            db.commit()
        except Exception:
            db.rollback()
            raise
        return AvailabilityRepository.get_schedule(db, user_id)

    @staticmethod
    def get_overrides(
        db: Session,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[DateOverride]:
        query = db.query(DateOverride).filter(DateOverride.user_id == user_id)
        if start_date:
            query = query.filter(DateOverride.date >= start_date)
        if end_date:
            query = query.filter(DateOverride.date <= end_date)
        return query.order_by(DateOverride.date.asc()).all()

    @staticmethod
    def get_override(db: Session, user_id: str, day: date) -> Optional[DateOverride]:
        return (
            db.query(DateOverride)
            .filter(DateOverride.user_id == user_id, DateOverride.date == day)
            .first()
        )

    @staticmethod
    def upsert_override(db: Session, user_id: str, day: date, **fields) -> DateOverride:
        override = AvailabilityRepository.get_override(db, user_id, day)
        if override is None:
            override = DateOverride(user_id=user_id, date=day)
            db.add(override)
        for key, value in fields.items():
            setattr(override, key, value)
        db.commit()
        db.refresh(override)
        return override

    @staticmethod
    def delete_override(db: Session, user_id: str, day: date) -> bool:
        deleted = (
            db.query(DateOverride)
            .filter(DateOverride.user_id == user_id, DateOverride.date == day)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted > 0
