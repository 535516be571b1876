"""Notification router - Settings, test SMS, stats and the reminder cron trigger"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import CRON_SECRET
from ...database import get_db
from ...models import User
from ...security_utils import constant_time_compare
from ...shared.dates import to_iso, utc_now
from .schemas import NotificationSettingsRequest, TestSmsRequest, settings_to_response
from .service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])
cron_router = APIRouter(prefix="/api/cron", tags=["Cron"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    """Dependency injection for NotificationService"""
    return NotificationService(db)


# ============================================================================
# SETTINGS
# ============================================================================


@router.get("/settings")
async def get_settings(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return {"settings": settings_to_response(service.get_settings(current_user))}


@router.put("/settings")
async def update_settings(
    data: NotificationSettingsRequest,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    settings = service.update_settings(current_user, data)
    return {"settings": settings_to_response(settings)}


@router.post("/test-sms")
async def send_test_sms(
    data: TestSmsRequest,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    success, error = await service.send_test_sms(data.phoneNumber)
    if success:
        return {"success": True}
    return {"success": False, "error": error}


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return service.get_stats(current_user)


# ============================================================================
# CRON
# ============================================================================


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """When CRON_SECRET is configured, callers must present it as a bearer token"""
    if CRON_SECRET and not constant_time_compare(authorization, f"Bearer {CRON_SECRET}"):
        logger.warning("⚠️ Rejected cron call with invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")


@cron_router.api_route("/process-reminders", methods=["GET", "POST"])
async def process_reminders(
    _: None = Depends(verify_cron_secret),
    service: NotificationService = Depends(get_notification_service),
):
    """Send due reminders and retry recent failures"""
    processed = await service.process_pending_reminders()
    retried = await service.retry_failed_reminders()
    logger.info(f"⏰ Cron reminders: processed={processed} retried={retried}")
    return {
        "success": True,
        "processedCount": processed,
        "retriedCount": retried,
        "timestamp": to_iso(utc_now()),
    }
