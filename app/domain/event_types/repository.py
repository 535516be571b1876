"""Event type repository - Database operations for event types"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import EventType, User


class EventTypeRepository:
    """Repository for event type database operations"""

    @staticmethod
    def get_by_id(db: Session, event_type_id: str) -> Optional[EventType]:
        return db.get(EventType, event_type_id)

    @staticmethod
    def list_for_user(db: Session, user_id: str, include_inactive: bool = False) -> list[EventType]:
        query = db.query(EventType).filter(EventType.user_id == user_id)
        if not include_inactive:
            query = query.filter(EventType.is_active.is_(True))
        return query.order_by(EventType.created_at.desc()).all()

    @staticmethod
    def slug_exists(
        db: Session, user_id: str, slug: str, exclude_event_type_id: Optional[str] = None
    ) -> bool:
        query = db.query(EventType.id).filter(EventType.user_id == user_id, EventType.slug == slug)
        if exclude_event_type_id:
            query = query.filter(EventType.id != exclude_event_type_id)
        return query.first() is not None

    @staticmethod
    def get_public(db: Session, username: str, slug: str) -> Optional[EventType]:
        return (
            db.query(EventType)
            .join(User, EventType.user_id == User.id)
            .filter(User.username == username, EventType.slug == slug)
            .first()
        )

    @staticmethod
    def create(db: Session, **data) -> EventType:
        event_type = EventType(**data)
        db.add(event_type)
        db.commit()
        db.refresh(event_type)
        return event_type

    @staticmethod
    def update(db: Session, event_type: EventType, **updates) -> EventType:
        for key, value in updates.items():
            setattr(event_type, key, value)
        db.commit()
        db.refresh(event_type)
        return event_type

    @staticmethod
    def delete(db: Session, event_type: EventType) -> None:
        db.delete(event_type)
        db.commit()
