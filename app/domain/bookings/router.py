"""Booking router - FastAPI endpoints for booking operations"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user
from ...database import get_db
from ...models import User
from ...rate_limiter import preset_rate_limiter
from .schemas import (
    CancelBookingRequest,
    CreateBookingRequest,
    RescheduleBookingRequest,
    UpdateBookingRequest,
    booking_to_response,
)
from .service import BookingService
from .tasks import process_cancelled_booking, process_new_booking, process_rescheduled_booking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])

booking_rate_limit = preset_rate_limiter("booking")
public_rate_limit = preset_rate_limiter("public")


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# PUBLIC BOOKING FLOW
# ============================================================================


@router.post("", status_code=201)
async def create_booking(
    data: CreateBookingRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(booking_rate_limit),
):
    """Book a slot; confirmations and reminders are sent in the background"""
    booking = await service.create_booking(data, request)
    background_tasks.add_task(process_new_booking, booking_id=booking.id)
    return {"booking": booking_to_response(booking)}


@router.get("/token/{token}")
async def get_booking_by_token(
    token: str,
    type: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(public_rate_limit),
):
    booking = service.get_by_token(token, type)
    return {"booking": booking_to_response(booking)}


# ============================================================================
# HOST OPERATIONS
# ============================================================================


@router.get("")
async def list_bookings(
    userId: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    bookings = service.list_bookings(userId, current_user, status, startDate, endDate)
    return {"bookings": [booking_to_response(b) for b in bookings]}


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id, current_user)
    return {"booking": booking_to_response(booking, include_payment=True)}


@router.patch("/{booking_id}")
async def update_booking(
    booking_id: str,
    data: UpdateBookingRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Mark a booking COMPLETED or NO_SHOW, or edit its notes"""
    booking = service.update_booking(booking_id, data, current_user)
    return {"booking": booking_to_response(booking)}


# ============================================================================
# RESCHEDULE / CANCEL (host or token holder)
# ============================================================================


@router.post("/{booking_id}/reschedule")
async def reschedule_booking(
    booking_id: str,
    data: RescheduleBookingRequest,
    background_tasks: BackgroundTasks,
    current_user: Optional[User] = Depends(get_optional_user),
    service: BookingService = Depends(get_booking_service),
):
    booking, previous_start = service.reschedule_booking(booking_id, data, current_user)
    background_tasks.add_task(
        process_rescheduled_booking, booking_id=booking.id, previous_start=previous_start
    )
    return {"booking": booking_to_response(booking)}


@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    data: CancelBookingRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: Optional[User] = Depends(get_optional_user),
    service: BookingService = Depends(get_booking_service),
):
    booking, refund = service.cancel_booking(booking_id, data, current_user, request)
    background_tasks.add_task(process_cancelled_booking, booking_id=booking.id)
    return {"booking": booking_to_response(booking), "refund": refund}
