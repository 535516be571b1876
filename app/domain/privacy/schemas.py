"""Privacy schemas - GDPR requests and export serialisation"""

from typing import Optional

from pydantic import BaseModel

from ...models import TeamMember, User
from ...shared.dates import to_iso
from ..users.schemas import user_to_response, white_label_to_response

DEFAULT_CONSENT = {"dataProcessing": True, "marketing": False, "analytics": False}

RETENTION_POLICY = {
    "activeData": "Data is retained while your account is active",
    "deletedAccounts": "Account data is permanently deleted within 30 days of account deletion",
    "backups": "Backup data is retained for 90 days for disaster recovery purposes",
}


class DeleteAccountRequest(BaseModel):
    immediate: bool = False
    confirm: bool = False


class ConsentRequest(BaseModel):
    dataProcessing: Optional[bool] = None
    marketing: Optional[bool] = None
    analytics: Optional[bool] = None


def export_user_to_response(user: User) -> dict:
    """Everything stored on the profile except 2FA material"""
    return {
        **user_to_response(user),
        **white_label_to_response(user),
        "bookingPageLayout": user.booking_page_layout,
        "customCSS": user.custom_css,
        "hasSeenTour": user.has_seen_tour,
        "onboardingStep": user.onboarding_step,
        "consent": user.consent,
    }


def membership_to_export(member: TeamMember) -> dict:
    team = member.team
    return {
        "id": member.id,
        "role": member.role,
        "accepted": member.accepted,
        "createdAt": to_iso(member.created_at),
        "team": {"id": team.id, "name": team.name, "slug": team.slug} if team else None,
    }
