"""Privacy router - GDPR export, account deletion and consent endpoints"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ConsentRequest, DeleteAccountRequest
from .service import PrivacyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/privacy", tags=["Privacy"])


def get_privacy_service(db: Session = Depends(get_db)) -> PrivacyService:
    """Dependency injection for PrivacyService"""
    return PrivacyService(db)


@router.get("/export")
async def export_data(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service),
):
    """Download every piece of data held about the caller"""
    export = service.export_user_data(current_user, request)
    return JSONResponse(
        content=export,
        headers={"Content-Disposition": f'attachment; filename="user-data-{current_user.id}.json"'},
    )


@router.post("/delete")
async def delete_account(
    data: DeleteAccountRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service),
):
    return service.delete_account(current_user, data.immediate, data.confirm, request)


@router.delete("/delete")
async def cancel_account_deletion(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service),
):
    service.cancel_deletion(current_user, request)
    return {"success": True, "message": "Account deletion cancelled"}


@router.get("/consent")
async def get_consent(
    current_user: User = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service),
):
    return {
        "consent": service.get_consent(current_user),
        "retentionPolicy": service.get_retention_policy(),
    }


@router.put("/consent")
async def update_consent(
    data: ConsentRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service),
):
    consent = service.update_consent(current_user.id, data, request)
    return {"success": True, "consent": consent}
