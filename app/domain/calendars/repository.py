"""Calendar repository - Database operations for connected calendars"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ConnectedCalendar


class CalendarRepository:
    """Repository for connected calendar database operations"""

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[ConnectedCalendar]:
        return (
            db.query(ConnectedCalendar)
            .filter(ConnectedCalendar.user_id == user_id)
            .order_by(ConnectedCalendar.created_at)
            .all()
        )

    @staticmethod
    def get_for_user(db: Session, user_id: str, calendar_id: str) -> Optional[ConnectedCalendar]:
        return (
            db.query(ConnectedCalendar)
            .filter(ConnectedCalendar.id == calendar_id, ConnectedCalendar.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_by_provider_calendar(
        db: Session, user_id: str, provider: str, calendar_id: str
    ) -> Optional[ConnectedCalendar]:
        return (
            db.query(ConnectedCalendar)
            .filter(
                ConnectedCalendar.user_id == user_id,
                ConnectedCalendar.provider == provider,
                ConnectedCalendar.calendar_id == calendar_id,
            )
            .first()
        )

    @staticmethod
    def save(db: Session, calendar: ConnectedCalendar) -> ConnectedCalendar:
        db.add(calendar)
        db.commit()
        db.refresh(calendar)
        return calendar

    @staticmethod
    def delete(db: Session, calendar: ConnectedCalendar) -> None:
        db.delete(calendar)
        db.commit()
