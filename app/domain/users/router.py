"""User router - FastAPI endpoints for profiles, usernames and page customization"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_premium
from ...cache import MEDIUM, cache, user_profile_key
from ...config import APP_URL
from ...database import get_db
from ...models import User
from ...rate_limiter import preset_rate_limiter
from ...services import identity_service
from ..event_types.schemas import event_type_to_response
from .schemas import (
    BookingCustomizationRequest,
    CheckUsernameRequest,
    OnboardingRequest,
    ResendVerificationRequest,
    UpdateAvatarRequest,
    UpdateBrandingRequest,
    UpdateProfileRequest,
    UpdateUsernameRequest,
    WhiteLabelRequest,
    public_user_to_response,
    user_to_response,
    white_label_to_response,
)
from .service import UserService, generate_meta_tags

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])
auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
settings_router = APIRouter(prefix="/api/user", tags=["User Settings"])
public_router = APIRouter(prefix="/api/public", tags=["Public"])

public_rate_limit = preset_rate_limiter("public")
auth_rate_limit = preset_rate_limiter("auth")


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


# ============================================================================
# AUTH HELPERS
# ============================================================================


@auth_router.post("/sync-profile")
async def sync_profile(current_user: User = Depends(get_current_user)):
    """Ensure a profile row exists for the signed-in identity"""
    return {"success": True, "profile": user_to_response(current_user)}


@auth_router.post("/check-username")
async def auth_check_username(
    data: CheckUsernameRequest,
    service: UserService = Depends(get_user_service),
    _: None = Depends(public_rate_limit),
):
    """Signup-time username check; a taken name is reported as a conflict"""
    if not data.username:
        raise HTTPException(status_code=400, detail="Username is required")
    if not service.is_username_available(data.username):
        raise HTTPException(
            status_code=409, detail={"error": "Username is already taken", "available": False}
        )
    return {"available": True}


def _auth_error_redirect(error: str, description: Optional[str] = None) -> RedirectResponse:
    url = f"{APP_URL}/auth/auth-code-error?error={error}"
    if description:
        url += f"&description={quote(description)}"
    return RedirectResponse(url=url, status_code=302)


@auth_router.get("/verify-email")
async def verify_email(
    token: str = Query(None),
    verification_type: str = Query("signup", alias="type"),
    next_path: str = Query("/dashboard", alias="next"),
    service: UserService = Depends(get_user_service),
):
    """Confirm the emailed link, create the profile and continue into the app"""
    if not token:
        return _auth_error_redirect("missing_token")

    claims, error = await identity_service.verify_email_token(token, verification_type)
    if error:
        return _auth_error_redirect("verification_failed", error)

    if claims:
        try:
            service.sync_profile(claims)
        except HTTPException as e:
            logger.error(f"❌ Profile sync after email verification failed: {e.detail}")

    # Only same-site paths
    if not next_path.startswith("/") or next_path.startswith("//"):
        next_path = "/dashboard"
    return RedirectResponse(url=f"{APP_URL}{next_path}", status_code=302)


@auth_router.post("/verify-email")
async def resend_verification(
    data: ResendVerificationRequest,
    _: None = Depends(auth_rate_limit),
):
    if not data.email:
        raise HTTPException(status_code=400, detail="Email is required")
    error = await identity_service.resend_verification_email(data.email)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return {"success": True}


# ============================================================================
# PROFILE
# ============================================================================


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return {"user": user_to_response(current_user)}


@router.post("/check-username")
async def check_username(
    data: CheckUsernameRequest,
    service: UserService = Depends(get_user_service),
    _: None = Depends(public_rate_limit),
):
    """Check whether a username is free, optionally ignoring one user's own row"""
    if not data.username:
        raise HTTPException(status_code=400, detail="Username is required")
    return {"available": service.is_username_available(data.username, data.excludeUserId)}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Full profile for the owner, public fields for anyone else"""
    user = service.get_user(user_id)
    if user.id == current_user.id:
        return {"user": user_to_response(user)}
    return {"user": public_user_to_response(user)}


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_profile(user_id, data, current_user)
    return {"user": user_to_response(user)}


@router.patch("/{user_id}/branding")
async def update_branding(
    user_id: str,
    data: UpdateBrandingRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_branding(user_id, data, current_user)
    return {"user": user_to_response(user)}


@router.patch("/{user_id}/username")
async def update_username(
    user_id: str,
    data: UpdateUsernameRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_username(user_id, data.username, current_user)
    return {"user": user_to_response(user)}


@router.patch("/{user_id}/avatar")
async def update_avatar(
    user_id: str,
    data: UpdateAvatarRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_avatar(user_id, data.avatarUrl, current_user)
    return {"user": user_to_response(user)}


@router.delete("/{user_id}/avatar")
async def delete_avatar(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_avatar(user_id, None, current_user)
    return {"user": user_to_response(user)}


# ============================================================================
# WHITE-LABEL, BOOKING PAGE & ONBOARDING
# ============================================================================


@settings_router.get("/white-label")
async def get_white_label(current_user: User = Depends(get_current_user)):
    return {"settings": white_label_to_response(current_user), "isPremium": current_user.is_premium}


@settings_router.put("/white-label")
async def update_white_label(
    data: WhiteLabelRequest,
    current_user: User = Depends(require_premium),
    service: UserService = Depends(get_user_service),
):
    user = service.update_white_label(current_user, data)
    return {"settings": white_label_to_response(user)}


@settings_router.get("/booking-customization")
async def get_booking_customization(current_user: User = Depends(get_current_user)):
    return {
        "layout": current_user.booking_page_layout,
        "customCSS": current_user.custom_css,
        "brandColor": current_user.brand_color,
    }


@settings_router.put("/booking-customization")
async def update_booking_customization(
    data: BookingCustomizationRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_booking_customization(current_user, data)
    return {
        "layout": user.booking_page_layout,
        "customCSS": user.custom_css,
        "brandColor": user.brand_color,
    }


@settings_router.get("/onboarding")
async def get_onboarding(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.get_onboarding(current_user)


@settings_router.post("/onboarding")
async def update_onboarding(
    data: OnboardingRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_onboarding(current_user, data)
    return {"success": True, **service.get_onboarding(user)}


# ============================================================================
# PUBLIC BOOKING PAGE
# ============================================================================


def public_page_branding(user: User) -> dict:
    """White-label data rendered on a host's public pages"""
    branding = {"meta": generate_meta_tags(user), "customCSS": user.custom_css}
    if user.is_premium:
        branding.update(
            {
                "hidePlatformBranding": user.hide_platform_branding,
                "customHeader": user.custom_header,
                "customFooter": user.custom_footer,
            }
        )
    return branding


@public_router.get("/users/{username}")
async def get_public_profile(
    username: str,
    service: UserService = Depends(get_user_service),
    _: None = Depends(public_rate_limit),
):
    """Public profile with the host's active event types"""

    def load_profile() -> dict:
        user = service.get_public_user(username)
        return {
            "user": public_user_to_response(user),
            "eventTypes": [
                event_type_to_response(et) for et in service.get_public_event_types(user)
            ],
            "branding": public_page_branding(user),
        }

    return cache.get_or_set(user_profile_key(username), load_profile, MEDIUM)
