"""Security router - Two-factor authentication and audit log endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import preset_rate_limiter
from .schemas import (
    EnableTwoFactorRequest,
    VerifyTwoFactorRequest,
    audit_log_to_response,
    login_event_to_response,
)
from .service import AuditService, TwoFactorService

logger = logging.getLogger(__name__)

two_factor_router = APIRouter(prefix="/api/auth/2fa", tags=["Two-Factor Auth"])
audit_router = APIRouter(prefix="/api/audit", tags=["Audit"])

auth_rate_limit = preset_rate_limiter("auth")


def get_two_factor_service(db: Session = Depends(get_db)) -> TwoFactorService:
    """Dependency injection for TwoFactorService"""
    return TwoFactorService(db)


def get_audit_service(db: Session = Depends(get_db)) -> AuditService:
    """Dependency injection for AuditService"""
    return AuditService(db)


# ============================================================================
# TWO-FACTOR AUTHENTICATION
# ============================================================================


@two_factor_router.post("/setup")
async def setup_two_factor(
    current_user: User = Depends(get_current_user),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Generate a TOTP secret, QR code and backup codes for confirmation"""
    return service.setup(current_user)


@two_factor_router.post("/enable")
async def enable_two_factor(
    data: EnableTwoFactorRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    service.enable(current_user, data.secret, data.code, data.backupCodes, request)
    return {"success": True}


@two_factor_router.post("/verify")
async def verify_two_factor(
    data: VerifyTwoFactorRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: TwoFactorService = Depends(get_two_factor_service),
    _: None = Depends(auth_rate_limit),
):
    service.verify(current_user, data.code, request)
    return {"success": True}


@two_factor_router.post("/disable")
async def disable_two_factor(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    service.disable(current_user, request)
    return {"success": True}


@two_factor_router.get("/backup-codes")
async def get_backup_code_count(
    current_user: User = Depends(get_current_user),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    return {"count": service.remaining_backup_codes(current_user)}


@two_factor_router.post("/backup-codes")
async def regenerate_backup_codes(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    return {"backupCodes": service.regenerate_backup_codes(current_user, request)}


# ============================================================================
# AUDIT LOGS
# ============================================================================


@audit_router.get("/logs")
async def get_audit_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: Optional[str] = Query(None),
    resource: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AuditService = Depends(get_audit_service),
):
    logs, total = service.get_logs(
        current_user, limit, offset, action, resource, startDate, endDate
    )
    return {"logs": [audit_log_to_response(log) for log in logs], "total": total}


@audit_router.get("/security")
async def get_security_events(
    current_user: User = Depends(get_current_user),
    service: AuditService = Depends(get_audit_service),
):
    events, logins = service.get_security_overview(current_user)
    return {
        "securityEvents": [audit_log_to_response(e) for e in events],
        "loginHistory": [login_event_to_response(e) for e in logins],
    }
