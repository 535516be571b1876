"""Domain router - Custom domain configuration endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.validators import validate_domain
from .schemas import SetDomainRequest
from .service import DomainService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user/domain", tags=["Custom Domains"])


def get_domain_service(db: Session = Depends(get_db)) -> DomainService:
    """Dependency injection for DomainService"""
    return DomainService(db)


@router.get("")
async def get_domain(current_user: User = Depends(get_current_user)):
    return {"domain": current_user.custom_domain, "verified": current_user.domain_verified}


@router.post("")
async def set_domain(
    data: SetDomainRequest,
    current_user: User = Depends(get_current_user),
    service: DomainService = Depends(get_domain_service),
):
    user = service.set_custom_domain(current_user, data.domain)
    return {"success": True, "domain": user.custom_domain, "verified": user.domain_verified}


@router.delete("")
async def remove_domain(
    current_user: User = Depends(get_current_user),
    service: DomainService = Depends(get_domain_service),
):
    service.remove_custom_domain(current_user)
    return {"success": True}


def resolve_domain(domain: Optional[str], user: User) -> str:
    """The queried domain, or the one already configured"""
    target = domain or user.custom_domain
    if not target:
        raise HTTPException(status_code=400, detail="Domain is required")
    try:
        return validate_domain(target)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/verify")
async def check_domain(
    domain: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: DomainService = Depends(get_domain_service),
):
    return service.verify_domain(resolve_domain(domain, current_user))


@router.post("/verify")
async def verify_domain(
    current_user: User = Depends(get_current_user),
    service: DomainService = Depends(get_domain_service),
):
    if not current_user.custom_domain:
        raise HTTPException(status_code=400, detail="No custom domain configured")
    return service.verify_domain(current_user.custom_domain)


@router.get("/instructions")
async def get_instructions(
    domain: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: DomainService = Depends(get_domain_service),
):
    """DNS records to add, for the given domain or the one already configured"""
    return service.get_dns_instructions(resolve_domain(domain, current_user))
