"""User service - Profile sync, branding, username and white-label logic"""

import logging
import re
import secrets
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import invalidate_user
from ...models import User
from ...security_utils import sanitize_css, sanitize_html
from .repository import UserRepository
from .schemas import (
    BookingCustomizationRequest,
    OnboardingRequest,
    UpdateBrandingRequest,
    UpdateProfileRequest,
    WhiteLabelRequest,
)

logger = logging.getLogger(__name__)

MAX_USERNAME_ATTEMPTS = 10


def _username_base(claims: dict) -> str:
    metadata = claims.get("user_metadata") or {}
    email = claims.get("email") or ""
    raw = metadata.get("username") or email.split("@")[0]
    base = re.sub(r"[^a-z0-9_-]", "", raw.lower())[:25]
    return base if len(base) >= 3 else f"user{base}"


def generate_meta_tags(user: User) -> dict:
    """SEO tags for a public booking page; custom values are premium-only"""
    display_name = user.name or user.username
    use_custom = user.is_premium
    return {
        "title": (use_custom and user.meta_title) or f"{display_name} - Book a meeting",
        "description": (use_custom and user.meta_description)
        or user.bio
        or f"Schedule a meeting with {display_name}",
        "image": (use_custom and user.meta_image) or user.avatar_url,
    }


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    # ========================================================================
    # PROFILE SYNC
    # ========================================================================

    def _available_username(self, base: str) -> str:
        if not self.repo.username_exists(self.db, base):
            return base
        for _ in range(MAX_USERNAME_ATTEMPTS):
            candidate = f"{base}{secrets.randbelow(9000) + 1000}"
            if not self.repo.username_exists(self.db, candidate):
                return candidate
        logger.error(f"❌ Could not find a free username for base '{base}'")
        raise HTTPException(status_code=500, detail="Failed to generate a unique username")

    def sync_profile(self, claims: dict) -> User:
        """Find the profile for a verified identity, creating it on first login"""
        user_id = claims["sub"]
        user = self.repo.get_by_id(self.db, user_id)
        if user:
            return user

        email = claims.get("email") or ""
        if email and self.repo.get_by_email(self.db, email):
            logger.error(f"❌ Email {email} is registered to a different identity")
            raise HTTPException(status_code=409, detail="This email is already registered")

        metadata = claims.get("user_metadata") or {}
        username = self._available_username(_username_base(claims))

        logger.info(f"🆕 Creating new user: {email} ({username})")
        try:
            user = self.repo.create_user(
                self.db,
                id=user_id,
                email=email,
                username=username,
                name=metadata.get("name") or metadata.get("full_name") or email.split("@")[0],
                timezone="UTC",
                avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
            )
        except IntegrityError as e:
            # Concurrent first requests for the same identity
            self.db.rollback()
            existing = self.repo.get_by_id(self.db, user_id)
            if existing:
                return existing
            raise HTTPException(status_code=409, detail="This email is already registered") from e

        logger.info(f"✅ New user created: {user.email}")
        return user

    # ========================================================================
    # PROFILE
    # ========================================================================

    def get_user(self, user_id: str) -> User:
        user = self.repo.get_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def _save(self, user: User, **updates) -> User:
        """Persist updates and drop cached public pages for the user"""
        user = self.repo.update_user(self.db, user, **updates)
        invalidate_user(user.id, user.username)
        return user

    @staticmethod
    def _ensure_self(user_id: str, current_user: User) -> None:
        if user_id != current_user.id:
            logger.warning(f"⚠️ User {current_user.id} attempted to modify user {user_id}")
            raise HTTPException(status_code=403, detail="Forbidden")

    def update_profile(self, user_id: str, data: UpdateProfileRequest, current_user: User) -> User:
        self._ensure_self(user_id, current_user)
        user = self.get_user(user_id)

        updates = {}
        if data.name is not None:
            updates["name"] = data.name.strip()
        if data.bio is not None:
            updates["bio"] = data.bio
        if data.timezone is not None:
            updates["timezone"] = data.timezone
        if data.weekStart is not None:
            updates["week_start"] = data.weekStart
        if data.timeFormat is not None:
            updates["time_format"] = data.timeFormat
        if data.dateFormat is not None:
            updates["date_format"] = data.dateFormat

        return self._save(user, **updates)

    def update_branding(self, user_id: str, data: UpdateBrandingRequest, current_user: User) -> User:
        self._ensure_self(user_id, current_user)
        user = self.get_user(user_id)

        updates = {}
        if data.brandColor is not None:
            updates["brand_color"] = data.brandColor
        if data.logoUrl is not None:
            updates["logo_url"] = data.logoUrl
        if "customDomain" in data.model_fields_set:
            if data.customDomain != user.custom_domain:
                from ..domains.service import DomainService

                if data.customDomain and not DomainService(self.db).is_domain_available(
                    data.customDomain, user.id
                ):
                    raise HTTPException(status_code=400, detail="Domain is already in use")
                updates["custom_domain"] = data.customDomain
                updates["domain_verified"] = False

        return self._save(user, **updates)

    def update_username(self, user_id: str, username: str, current_user: User) -> User:
        self._ensure_self(user_id, current_user)
        user = self.get_user(user_id)

        if self.repo.username_exists(self.db, username, exclude_user_id=user.id):
            raise HTTPException(status_code=409, detail="Username is already taken")

        old_username = user.username
        try:
            user = self.repo.update_user(self.db, user, username=username)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Username is already taken") from e

        invalidate_user(user.id, old_username)
        logger.info(f"✅ Username changed for user {user.id}: {old_username} -> {username}")
        return user

    def is_username_available(self, username: str, exclude_user_id: Optional[str] = None) -> bool:
        return not self.repo.username_exists(self.db, username, exclude_user_id)

    def update_avatar(self, user_id: str, avatar_url: Optional[str], current_user: User) -> User:
        self._ensure_self(user_id, current_user)
        user = self.get_user(user_id)
        return self._save(user, avatar_url=avatar_url)

    # ========================================================================
    # WHITE-LABEL & BOOKING PAGE
    # ========================================================================

    def update_white_label(self, user: User, data: WhiteLabelRequest) -> User:
        updates = {}
        if data.hidePlatformBranding is not None:
            updates["hide_platform_branding"] = data.hidePlatformBranding
        if data.customHeader is not None:
            updates["custom_header"] = sanitize_html(data.customHeader)
        if data.customFooter is not None:
            updates["custom_footer"] = sanitize_html(data.customFooter)
        if data.emailBrandingEnabled is not None:
            updates["email_branding_enabled"] = data.emailBrandingEnabled
        if data.metaTitle is not None:
            updates["meta_title"] = data.metaTitle
        if data.metaDescription is not None:
            updates["meta_description"] = data.metaDescription
        if data.metaImage is not None:
            updates["meta_image"] = data.metaImage or None

        user = self._save(user, **updates)
        logger.info(f"✅ White-label settings updated for user {user.id}")
        return user

    def update_booking_customization(self, user: User, data: BookingCustomizationRequest) -> User:
        updates = {}
        if data.layout is not None:
            updates["booking_page_layout"] = data.layout
        if data.customCSS is not None:
            updates["custom_css"] = sanitize_css(data.customCSS)
        if data.brandColor is not None:
            updates["brand_color"] = data.brandColor
        return self._save(user, **updates)

    # ========================================================================
    # ONBOARDING
    # ========================================================================

    def get_onboarding(self, user: User) -> dict:
        return {
            "completed": user.onboarding_completed,
            "hasSeenTour": user.has_seen_tour,
            "step": user.onboarding_step,
            "tasks": {
                "profileComplete": bool(user.name and user.timezone),
                "eventTypeCreated": self.repo.has_event_types(self.db, user.id),
                "availabilitySet": self.repo.has_availability(self.db, user.id),
            },
        }

    def update_onboarding(self, user: User, data: OnboardingRequest) -> User:
        updates = {}
        if data.completed is not None:
            updates["onboarding_completed"] = data.completed
        if data.hasSeenTour is not None:
            updates["has_seen_tour"] = data.hasSeenTour
        if data.step is not None:
            updates["onboarding_step"] = data.step
        return self._save(user, **updates)

    # ========================================================================
    # PUBLIC PROFILE
    # ========================================================================

    def get_public_user(self, username: str) -> User:
        user = self.repo.get_by_username(self.db, username)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def get_public_event_types(self, user: User):
        return self.repo.get_active_event_types(self.db, user.id)
