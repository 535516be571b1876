"""Event type service - Business logic for event types"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_event_types, invalidate_user
from ...models import EventType, User
from .repository import EventTypeRepository
from .schemas import EventTypeCreate, EventTypeUpdate, to_columns

logger = logging.getLogger(__name__)


class EventTypeService:
    """Service layer for event type business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EventTypeRepository()

    def ensure_unique_slug(
        self, user_id: str, slug: str, exclude_event_type_id: Optional[str] = None
    ) -> str:
        """Append -1, -2, ... until the slug is free for this user"""
        candidate = slug
        counter = 1
        while self.repo.slug_exists(self.db, user_id, candidate, exclude_event_type_id):
            candidate = f"{slug}-{counter}"
            counter += 1
        return candidate

    def is_slug_available(
        self, user_id: str, slug: str, exclude_event_type_id: Optional[str] = None
    ) -> bool:
        return not self.repo.slug_exists(self.db, user_id, slug, exclude_event_type_id)

    def _invalidate(self, user: User) -> None:
        invalidate_event_types(user.id)
        invalidate_user(user.id, user.username)

    def list_event_types(self, user: User, include_inactive: bool = False) -> list[EventType]:
        return self.repo.list_for_user(self.db, user.id, include_inactive)

    def get_event_type(self, event_type_id: str, user: User) -> EventType:
        event_type = self.repo.get_by_id(self.db, event_type_id)
        if not event_type:
            raise HTTPException(status_code=404, detail="Event type not found")
        if event_type.user_id != user.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        return event_type

    def create_event_type(self, data: EventTypeCreate, user: User) -> EventType:
        logger.info(f"📥 Creating event type '{data.title}' for user {user.id}")
        columns = to_columns(data, only_set=False)
        columns["custom_questions"] = columns.get("custom_questions") or []
        event_type = self.repo.create(
            self.db,
            user_id=user.id,
            slug=self.ensure_unique_slug(user.id, data.slug),
            **columns,
        )
        self._invalidate(user)
        logger.info(f"✅ Event type created: {event_type.id} ({event_type.slug})")
        return event_type

    def update_event_type(self, event_type_id: str, data: EventTypeUpdate, user: User) -> EventType:
        event_type = self.get_event_type(event_type_id, user)
        event_type = self.repo.update(self.db, event_type, **to_columns(data))
        self._invalidate(user)
        return event_type

    def delete_event_type(self, event_type_id: str, user: User) -> None:
        event_type = self.get_event_type(event_type_id, user)
        self.repo.delete(self.db, event_type)
        self._invalidate(user)
        logger.info(f"🗑️ Event type deleted: {event_type_id}")

    def duplicate_event_type(self, event_type_id: str, user: User) -> EventType:
        """Copy an event type as an inactive draft"""
        source = self.get_event_type(event_type_id, user)
        copy = self.repo.create(
            self.db,
            user_id=user.id,
            team_id=source.team_id,
            title=f"{source.title} (Copy)"[:100],
            slug=self.ensure_unique_slug(user.id, f"{source.slug}-copy"),
            description=source.description,
            duration=source.duration,
            location_type=source.location_type,
            location_details=source.location_details,
            minimum_notice=source.minimum_notice,
            buffer_time_before=source.buffer_time_before,
            buffer_time_after=source.buffer_time_after,
            max_booking_window=source.max_booking_window,
            price=source.price,
            currency=source.currency,
            color=source.color,
            custom_questions=list(source.custom_questions or []),
            is_active=False,
            scheduling_type=source.scheduling_type,
        )
        self._invalidate(user)
        return copy

    def get_public_event_type(self, username: str, slug: str) -> EventType:
        event_type = self.repo.get_public(self.db, username, slug)
        if not event_type or not event_type.is_active:
            raise HTTPException(status_code=404, detail="Event type not found")
        return event_type
