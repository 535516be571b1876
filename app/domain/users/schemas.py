"""User domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import User
from ...shared.dates import to_iso
from ...shared.validators import (
    validate_domain,
    validate_hex_color,
    validate_timezone,
    validate_url,
    validate_username,
)


class UpdateProfileRequest(BaseModel):
    """Schema for profile updates"""

    name: Optional[str] = None
    bio: Optional[str] = None
    timezone: Optional[str] = None
    weekStart: Optional[int] = None
    timeFormat: Optional[str] = None
    dateFormat: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None:
            if len(v.strip()) < 1:
                raise ValueError("Name is required")
            if len(v) > 100:
                raise ValueError("Name is too long")
        return v

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Bio is too long")
        return v

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        return validate_timezone(v)

    @field_validator("weekStart")
    @classmethod
    def validate_week_start(cls, v):
        if v is not None and not 0 <= v <= 6:
            raise ValueError("Week start must be between 0 and 6")
        return v

    @field_validator("timeFormat")
    @classmethod
    def validate_time_format(cls, v):
        if v is not None and v not in ("12h", "24h"):
            raise ValueError("Time format must be 12h or 24h")
        return v

    @field_validator("dateFormat")
    @classmethod
    def validate_date_format(cls, v):
        if v is not None and not 1 <= len(v) <= 20:
            raise ValueError("Invalid date format")
        return v


class UpdateBrandingRequest(BaseModel):
    brandColor: Optional[str] = None
    logoUrl: Optional[str] = None
    customDomain: Optional[str] = None

    @field_validator("brandColor")
    @classmethod
    def check_brand_color(cls, v):
        return validate_hex_color(v)

    @field_validator("logoUrl")
    @classmethod
    def check_logo_url(cls, v):
        return validate_url(v, "Invalid logo URL")

    @field_validator("customDomain")
    @classmethod
    def check_custom_domain(cls, v):
        if v is None or v == "":
            return None
        return validate_domain(v)


class UpdateUsernameRequest(BaseModel):
    username: str

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validate_username(v)


class CheckUsernameRequest(BaseModel):
    username: Optional[str] = None
    excludeUserId: Optional[str] = None


class ResendVerificationRequest(BaseModel):
    email: Optional[str] = None


class UpdateAvatarRequest(BaseModel):
    avatarUrl: Optional[str] = None

    @field_validator("avatarUrl")
    @classmethod
    def check_avatar_url(cls, v):
        if not v:
            raise ValueError("Avatar URL is required")
        return v


class WhiteLabelRequest(BaseModel):
    """Premium-only public page customization"""

    hidePlatformBranding: Optional[bool] = None
    customHeader: Optional[str] = None
    customFooter: Optional[str] = None
    emailBrandingEnabled: Optional[bool] = None
    metaTitle: Optional[str] = None
    metaDescription: Optional[str] = None
    metaImage: Optional[str] = None

    @field_validator("customHeader", "customFooter")
    @classmethod
    def validate_custom_html(cls, v):
        if v is not None and len(v) > 2000:
            raise ValueError("Custom HTML must be 2000 characters or less")
        return v

    @field_validator("metaTitle")
    @classmethod
    def validate_meta_title(cls, v):
        if v is not None and len(v) > 60:
            raise ValueError("Meta title must be 60 characters or less")
        return v

    @field_validator("metaDescription")
    @classmethod
    def validate_meta_description(cls, v):
        if v is not None and len(v) > 160:
            raise ValueError("Meta description must be 160 characters or less")
        return v

    @field_validator("metaImage")
    @classmethod
    def validate_meta_image(cls, v):
        if v:
            return validate_url(v, "Invalid meta image URL")
        return v


class BookingCustomizationRequest(BaseModel):
    layout: Optional[str] = None
    customCSS: Optional[str] = None
    brandColor: Optional[str] = None

    @field_validator("layout")
    @classmethod
    def validate_layout(cls, v):
        if v is not None and v not in ("default", "centered", "split"):
            raise ValueError("Layout must be default, centered, or split")
        return v

    @field_validator("customCSS")
    @classmethod
    def validate_custom_css(cls, v):
        if v is not None and len(v) > 10000:
            raise ValueError("Custom CSS must be 10000 characters or less")
        return v

    @field_validator("brandColor")
    @classmethod
    def check_brand_color(cls, v):
        return validate_hex_color(v)


class OnboardingRequest(BaseModel):
    completed: Optional[bool] = None
    hasSeenTour: Optional[bool] = None
    step: Optional[int] = None

    @field_validator("step")
    @classmethod
    def validate_step(cls, v):
        if v is not None and v < 0:
            raise ValueError("Step must be 0 or greater")
        return v


# ============================================================================
# RESPONSE SHAPING
# ============================================================================


def user_to_response(user: User) -> dict:
    """Account owner's view of a user; never includes 2FA secrets"""
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "name": user.name,
        "bio": user.bio,
        "avatarUrl": user.avatar_url,
        "timezone": user.timezone,
        "weekStart": user.week_start,
        "timeFormat": user.time_format,
        "dateFormat": user.date_format,
        "brandColor": user.brand_color,
        "logoUrl": user.logo_url,
        "customDomain": user.custom_domain,
        "domainVerified": user.domain_verified,
        "isPremium": user.is_premium,
        "twoFactorEnabled": user.two_factor_enabled,
        "onboardingCompleted": user.onboarding_completed,
        "deletionScheduledAt": to_iso(user.deletion_scheduled_at),
        "createdAt": to_iso(user.created_at),
        "updatedAt": to_iso(user.updated_at),
    }


def public_user_to_response(user: User) -> dict:
    """Fields shown on public booking pages"""
    return {
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "bio": user.bio,
        "avatarUrl": user.avatar_url,
        "timezone": user.timezone,
        "brandColor": user.brand_color,
        "logoUrl": user.logo_url,
        "bookingPageLayout": user.booking_page_layout,
    }


def white_label_to_response(user: User) -> dict:
    return {
        "hidePlatformBranding": user.hide_platform_branding,
        "customHeader": user.custom_header,
        "customFooter": user.custom_footer,
        "emailBrandingEnabled": user.email_branding_enabled,
        "metaTitle": user.meta_title,
        "metaDescription": user.meta_description,
        "metaImage": user.meta_image,
    }
