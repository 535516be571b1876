"""Privacy service - GDPR data export, account deletion, anonymisation and consent"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...cache import invalidate_availability, invalidate_event_types, invalidate_user
from ...models import EventType, Payment, User
from ...shared.dates import to_iso, utc_now
from ..availability.schemas import override_to_response, schedule_item_to_response
from ..bookings.schemas import booking_to_response
from ..calendars.schemas import calendar_to_response
from ..event_types.schemas import event_type_to_response
from ..notifications.schemas import settings_to_response
from ..payments.schemas import payment_to_response
from ..security.schemas import audit_log_to_response
from ..security.service import create_audit_log
from .repository import PrivacyRepository
from .schemas import (
    DEFAULT_CONSENT,
    RETENTION_POLICY,
    ConsentRequest,
    export_user_to_response,
    membership_to_export,
)

logger = logging.getLogger(__name__)

DELETION_GRACE_DAYS = 30
# Payments in these states are financial records; such accounts are anonymised, not erased
RETAINED_PAYMENT_STATUSES = ("SUCCEEDED", "PARTIALLY_REFUNDED", "REFUNDED")


def _reminder_to_export(reminder) -> dict:
    return {
        "id": reminder.id,
        "type": reminder.type,
        "scheduledFor": to_iso(reminder.scheduled_for),
        "status": reminder.status,
        "sentAt": to_iso(reminder.sent_at),
    }


def delete_user_account(db: Session, user_id: str) -> None:
    """
    Erase a user and all dependent rows in a single transaction.

    Raises:
        SQLAlchemyError: After rolling back, leaving every row in place
    """
    username = db.query(User.username).filter(User.id == user_id).scalar()
    try:
        PrivacyRepository.delete_account_data(db, user_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"❌ Account deletion rolled back for user {user_id}")
        raise

    invalidate_availability(user_id)
    invalidate_event_types(user_id)
    invalidate_user(user_id, username)
    logger.info(f"🗑️ Account {user_id} deleted")


def anonymize_user_data(db: Session, user_id: str) -> None:
    """Strip personal data while keeping booking and payment rows"""
    user = db.get(User, user_id)
    if not user:
        return
    previous_username = user.username

    PrivacyRepository.anonymize_bookings(db, user_id)
    db.query(EventType).filter(EventType.user_id == user_id).update(
        {EventType.is_active: False}, synchronize_session=False
    )

    user.email = f"deleted-{user_id}@anonymous.local"
    user.username = f"deleted-{user_id[:8]}"
    user.name = "Deleted User"
    for field in (
        "bio",
        "avatar_url",
        "brand_color",
        "logo_url",
        "custom_domain",
        "custom_css",
        "custom_header",
        "custom_footer",
        "meta_title",
        "meta_description",
        "meta_image",
        "two_factor_secret",
        "backup_codes",
        "consent",
        "deletion_scheduled_at",
    ):
        setattr(user, field, None)
    user.domain_verified = False
    user.two_factor_enabled = False
    db.commit()

    invalidate_event_types(user_id)
    invalidate_user(user_id, previous_username)
    logger.info(f"🕶️ Account {user_id} anonymised")


def purge_scheduled_deletions(db: Session) -> int:
    """Delete (or anonymise) accounts whose grace period has elapsed; returns the count"""
    processed = 0
    for user in PrivacyRepository.list_due_for_deletion(db, utc_now()):
        user_id = user.id
        try:
            has_financial_records = (
                db.query(Payment.id)
                .filter(Payment.user_id == user_id, Payment.status.in_(RETAINED_PAYMENT_STATUSES))
                .first()
                is not None
            )
            if has_financial_records:
                anonymize_user_data(db, user_id)
            else:
                delete_user_account(db, user_id)
            processed += 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Scheduled deletion failed for user {user_id}: {e}")
    if processed:
        logger.info(f"🧹 Purged {processed} accounts past their deletion date")
    return processed


class PrivacyService:
    """Service layer for GDPR requests"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PrivacyRepository()

    def export_user_data(self, user: User, request: Optional[Request] = None) -> dict:
        data = self.repo.load_export_data(self.db, user.id)

        bookings = []
        for booking in data["bookings"]:
            item = booking_to_response(booking, include_payment=True)
            item["reminders"] = [_reminder_to_export(r) for r in booking.reminders]
            bookings.append(item)

        settings = data["notificationSettings"]
        export = {
            "exportDate": to_iso(utc_now()),
            "user": export_user_to_response(user),
            "eventTypes": [event_type_to_response(et) for et in data["eventTypes"]],
            "bookings": bookings,
            "availability": [schedule_item_to_response(a) for a in data["availability"]],
            "dateOverrides": [override_to_response(o) for o in data["dateOverrides"]],
            "connectedCalendars": [
                {k: v for k, v in calendar_to_response(c).items() if k not in ("id", "calendarId")}
                for c in data["connectedCalendars"]
            ],
            "teamMemberships": [membership_to_export(m) for m in data["teamMemberships"]],
            "notificationSettings": settings_to_response(settings) if settings else None,
            "payments": [payment_to_response(p) for p in data["payments"]],
            "auditLogs": [audit_log_to_response(log) for log in data["auditLogs"]],
            "summary": {
                "totalEventTypes": len(data["eventTypes"]),
                "totalBookings": len(data["bookings"]),
                "totalPayments": len(data["payments"]),
                "accountCreated": to_iso(user.created_at),
            },
        }

        create_audit_log(self.db, "DATA_EXPORTED", "privacy", user_id=user.id, request=request)
        logger.info(f"📦 Data export generated for user {user.id}")
        return export

    def delete_account(
        self, user: User, immediate: bool, confirm: bool, request: Optional[Request] = None
    ) -> dict:
        if immediate:
            if not confirm:
                raise HTTPException(status_code=400, detail="Account deletion must be confirmed")
            user_id = user.id
            try:
                delete_user_account(self.db, user_id)
            except SQLAlchemyError as e:
                raise HTTPException(status_code=500, detail="Failed to delete account") from e
            # The user row is gone, so the entry is not attributed
            create_audit_log(
                self.db, "ACCOUNT_DELETED", "privacy", resource_id=user_id, request=request
            )
            return {"success": True, "message": "Account deleted successfully"}

        deletion_date = utc_now() + timedelta(days=DELETION_GRACE_DAYS)
        user.deletion_scheduled_at = deletion_date
        self.db.commit()
        create_audit_log(
            self.db,
            "ACCOUNT_DELETION_SCHEDULED",
            "privacy",
            user_id=user.id,
            request=request,
            metadata={"deletionDate": to_iso(deletion_date)},
        )
        logger.info(f"⏳ Account {user.id} scheduled for deletion on {deletion_date}")
        return {
            "success": True,
            "message": "Account deletion scheduled",
            "deletionDate": to_iso(deletion_date),
        }

    def cancel_deletion(self, user: User, request: Optional[Request] = None) -> None:
        user.deletion_scheduled_at = None
        self.db.commit()
        create_audit_log(
            self.db, "ACCOUNT_DELETION_CANCELLED", "privacy", user_id=user.id, request=request
        )

    @staticmethod
    def get_consent(user: User) -> dict:
        return {**DEFAULT_CONSENT, **(user.consent or {})}

    def update_consent(
        self, user_id: str, data: ConsentRequest, request: Optional[Request] = None
    ) -> dict:
        user = self.db.get(User, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        consent = {**self.get_consent(user), **data.model_dump(exclude_none=True)}
        user.consent = consent
        self.db.commit()

        create_audit_log(
            self.db, "CONSENT_UPDATED", "privacy", user_id=user.id, request=request, metadata=consent
        )
        return consent

    @staticmethod
    def get_retention_policy() -> dict:
        return dict(RETENTION_POLICY)
