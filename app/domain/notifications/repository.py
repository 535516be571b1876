"""Notification repository - Database operations for settings and reminders"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Booking, NotificationSetting, Reminder


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def get_settings(db: Session, user_id: str) -> Optional[NotificationSetting]:
        return db.query(NotificationSetting).filter(NotificationSetting.user_id == user_id).first()

    @staticmethod
    def save_settings(db: Session, user_id: str, **fields) -> NotificationSetting:
        settings = NotificationRepository.get_settings(db, user_id)
        if settings is None:
            settings = NotificationSetting(user_id=user_id)
            db.add(settings)
        for key, value in fields.items():
            setattr(settings, key, value)
        db.commit()
        db.refresh(settings)
        return settings

    @staticmethod
    def add_reminders(db: Session, reminders: list[Reminder]) -> None:
        db.add_all(reminders)
        db.commit()

    @staticmethod
    def get_due(db: Session, now: datetime, limit: int = 100) -> list[Reminder]:
        return (
            db.query(Reminder)
            .options(joinedload(Reminder.booking))
            .filter(Reminder.status == "PENDING", Reminder.scheduled_for <= now)
            .order_by(Reminder.scheduled_for.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_recent_failed(db: Session, since: datetime, now: datetime, limit: int = 50) -> list[Reminder]:
        return (
            db.query(Reminder)
            .options(joinedload(Reminder.booking))
            .filter(
                Reminder.status == "FAILED",
                Reminder.scheduled_for >= since,
                Reminder.scheduled_for <= now,
            )
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark(db: Session, reminder: Reminder, status: str, sent_at=None, error=None) -> None:
        reminder.status = status
        reminder.sent_at = sent_at
        reminder.error = error
        db.commit()

    @staticmethod
    def fail_pending(db: Session, booking_id: str) -> int:
        updated = (
            db.query(Reminder)
            .filter(Reminder.booking_id == booking_id, Reminder.status == "PENDING")
            .update({"status": "FAILED", "error": "Booking cancelled"}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete_pending(db: Session, booking_id: str) -> int:
        deleted = (
            db.query(Reminder)
            .filter(Reminder.booking_id == booking_id, Reminder.status == "PENDING")
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def count_by_status(db: Session, user_id: str, status: str) -> int:
        return (
            db.query(Reminder)
            .join(Booking, Reminder.booking_id == Booking.id)
            .filter(Booking.user_id == user_id, Reminder.status == status)
            .count()
        )
