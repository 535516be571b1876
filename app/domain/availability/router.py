"""Availability router - FastAPI endpoints for schedules, overrides and slots"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...cache import MEDIUM, cache, date_overrides_key
from ...database import get_db
from ...models import User
from ...rate_limiter import preset_rate_limiter
from .schemas import (
    CheckSlotRequest,
    DateOverrideRequest,
    DeleteOverrideRequest,
    ScheduleRequest,
    override_to_response,
    schedule_item_to_response,
)
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/availability", tags=["Availability"])

public_rate_limit = preset_rate_limiter("public")


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


# ============================================================================
# WEEKLY SCHEDULE
# ============================================================================


@router.get("/{user_id}/schedule")
async def get_schedule(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    return {"schedule": [schedule_item_to_response(s) for s in service.get_schedule(user_id)]}


@router.put("/{user_id}/schedule")
@router.post("/{user_id}/schedule")
async def set_schedule(
    user_id: str,
    data: ScheduleRequest,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Replace the whole weekly schedule"""
    rows = service.set_schedule(user_id, data.schedule, current_user)
    return {"schedule": [schedule_item_to_response(s) for s in rows]}


# ============================================================================
# DATE OVERRIDES
# ============================================================================


@router.get("/{user_id}/overrides")
async def get_overrides(
    user_id: str,
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    def load_overrides():
        return [override_to_response(o) for o in service.get_overrides(user_id, startDate, endDate)]

    key = date_overrides_key(user_id, startDate or "", endDate or "")
    return {"overrides": cache.get_or_set(key, load_overrides, MEDIUM)}


@router.post("/{user_id}/overrides")
async def set_override(
    user_id: str,
    data: DateOverrideRequest,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    override = service.set_override(user_id, data, current_user)
    return {"override": override_to_response(override)}


@router.delete("/{user_id}/overrides")
async def delete_override(
    user_id: str,
    data: DeleteOverrideRequest,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    service.delete_override(user_id, data.date, current_user)
    return {"success": True}


# ============================================================================
# SLOTS (public)
# ============================================================================


@router.get("/{user_id}/slots")
async def get_slots(
    user_id: str,
    date: Optional[str] = Query(None),
    duration: Optional[int] = Query(None),
    timezone: Optional[str] = Query(None),
    eventTypeId: Optional[str] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
    _: None = Depends(public_rate_limit),
):
    """Bookable slots for one day"""
    return {"slots": service.get_available_slots(user_id, date, duration, timezone, eventTypeId)}


@router.post("/{user_id}/check")
async def check_slot(
    user_id: str,
    data: CheckSlotRequest,
    service: AvailabilityService = Depends(get_availability_service),
    _: None = Depends(public_rate_limit),
):
    return {"available": service.check_slot(user_id, data.startTime, data.duration)}


@router.get("/{user_id}/range")
async def get_range(
    user_id: str,
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    return {"slots": service.get_range(user_id, startDate, endDate)}
