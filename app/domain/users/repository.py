"""User repository - Database operations for users"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Availability, EventType, User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.get(User, user_id)

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_by_username(db: Session, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def username_exists(db: Session, username: str, exclude_user_id: Optional[str] = None) -> bool:
        """Exact (case-sensitive) match on username"""
        query = db.query(User.id).filter(User.username == username)
        if exclude_user_id:
            query = query.filter(User.id != exclude_user_id)
        return query.first() is not None

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(**user_data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        """Update a user with provided fields (None clears a field)"""
        for key, value in updates.items():
            if hasattr(user, key):
                setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def has_event_types(db: Session, user_id: str) -> bool:
        return db.query(EventType.id).filter(EventType.user_id == user_id).first() is not None

    @staticmethod
    def has_availability(db: Session, user_id: str) -> bool:
        return db.query(Availability.id).filter(Availability.user_id == user_id).first() is not None

    @staticmethod
    def get_active_event_types(db: Session, user_id: str) -> list[EventType]:
        return (
            db.query(EventType)
            .filter(EventType.user_id == user_id, EventType.is_active.is_(True))
            .order_by(EventType.created_at.asc())
            .all()
        )
