"""Event type router - FastAPI endpoints for event type operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...cache import MEDIUM, cache, event_types_key
from ...database import get_db
from ...models import User
from ...rate_limiter import preset_rate_limiter
from ..users.router import public_page_branding
from ..users.schemas import public_user_to_response
from .schemas import EventTypeCreate, EventTypeUpdate, event_type_to_response
from .service import EventTypeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/event-types", tags=["Event Types"])
public_router = APIRouter(prefix="/api/public", tags=["Public"])

public_rate_limit = preset_rate_limiter("public")


def get_event_type_service(db: Session = Depends(get_db)) -> EventTypeService:
    """Dependency injection for EventTypeService"""
    return EventTypeService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("")
async def list_event_types(
    includeInactive: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: EventTypeService = Depends(get_event_type_service),
):
    """List the caller's event types, newest first"""

    def load_event_types():
        event_types = service.list_event_types(current_user, includeInactive)
        return [event_type_to_response(et) for et in event_types]

    key = event_types_key(current_user.id, includeInactive)
    return {"eventTypes": cache.get_or_set(key, load_event_types, MEDIUM)}


@router.post("", status_code=201)
async def create_event_type(
    data: EventTypeCreate,
    current_user: User = Depends(get_current_user),
    service: EventTypeService = Depends(get_event_type_service),
):
    event_type = service.create_event_type(data, current_user)
    return {"eventType": event_type_to_response(event_type)}


@router.get("/check-slug")
async def check_slug(
    slug: Optional[str] = Query(None),
    excludeEventTypeId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: EventTypeService = Depends(get_event_type_service),
):
    if not slug:
        raise HTTPException(status_code=400, detail="Slug is required")
    return {"available": service.is_slug_available(current_user.id, slug, excludeEventTypeId)}


@router.get("/{event_type_id}")
async def get_event_type(
    event_type_id: str,
    current_user: User = Depends(get_current_user),
    service: EventTypeService = Depends(get_event_type_service),
):
    event_type = service.get_event_type(event_type_id, current_user)
    return {"eventType": event_type_to_response(event_type)}


@router.patch("/{event_type_id}")
async def update_event_type(
    event_type_id: str,
    data: EventTypeUpdate,
    current_user: User = Depends(get_current_user),
    service: EventTypeService = Depends(get_event_type_service),
):
    event_type = service.update_event_type(event_type_id, data, current_user)
    return {"eventType": event_type_to_response(event_type)}


@router.delete("/{event_type_id}")
async def delete_event_type(
    event_type_id: str,
    current_user: User = Depends(get_current_user),
    service: EventTypeService = Depends(get_event_type_service),
):
    service.delete_event_type(event_type_id, current_user)
    return {"success": True}


@router.post("/{event_type_id}/duplicate", status_code=201)
async def duplicate_event_type(
    event_type_id: str,
    current_user: User = Depends(get_current_user),
    service: EventTypeService = Depends(get_event_type_service),
):
    """Copy an event type; the copy starts inactive"""
    event_type = service.duplicate_event_type(event_type_id, current_user)
    return {"eventType": event_type_to_response(event_type)}


# ============================================================================
# PUBLIC BOOKING PAGE
# ============================================================================


@public_router.get("/users/{username}/event-types/{slug}")
async def get_public_event_type(
    username: str,
    slug: str,
    service: EventTypeService = Depends(get_event_type_service),
    _: None = Depends(public_rate_limit),
):
    """Active event type with its host's public profile"""
    event_type = service.get_public_event_type(username, slug)
    return {
        "eventType": event_type_to_response(event_type),
        "user": public_user_to_response(event_type.user),
        "branding": public_page_branding(event_type.user),
    }
