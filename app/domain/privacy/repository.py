"""Privacy repository - Bulk reads and erasure of a user's data"""

from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from ...models import (
    AuditLog,
    Availability,
    Booking,
    ConnectedCalendar,
    DateOverride,
    EventType,
    NotificationSetting,
    Payment,
    Reminder,
    TeamMember,
    User,
)


class PrivacyRepository:
    """Repository for GDPR export and erasure"""

    @staticmethod
    def load_export_data(db: Session, user_id: str) -> dict:
        return {
            "eventTypes": db.query(EventType).filter(EventType.user_id == user_id).all(),
            "bookings": (
                db.query(Booking)
                .options(
                    joinedload(Booking.event_type),
                    joinedload(Booking.payment),
                    joinedload(Booking.reminders),
                )
                .filter(Booking.user_id == user_id)
                .order_by(Booking.start_time)
                .all()
            ),
            "availability": db.query(Availability).filter(Availability.user_id == user_id).all(),
            "dateOverrides": db.query(DateOverride).filter(DateOverride.user_id == user_id).all(),
            "connectedCalendars": (
                db.query(ConnectedCalendar).filter(ConnectedCalendar.user_id == user_id).all()
            ),
            "teamMemberships": (
                db.query(TeamMember)
                .options(joinedload(TeamMember.team))
                .filter(TeamMember.user_id == user_id)
                .all()
            ),
            "notificationSettings": (
                db.query(NotificationSetting).filter(NotificationSetting.user_id == user_id).first()
            ),
            "payments": db.query(Payment).filter(Payment.user_id == user_id).all(),
            "auditLogs": (
                db.query(AuditLog)
                .filter(AuditLog.user_id == user_id)
                .order_by(AuditLog.created_at.desc())
                .all()
            ),
        }

    @staticmethod
    def delete_account_data(db: Session, user_id: str) -> None:
        """
        Remove a user and every dependent row, children before parents.

        Runs inside the caller's transaction and does not commit.
        """
        booking_ids = db.query(Booking.id).filter(Booking.user_id == user_id)

        db.query(Reminder).filter(Reminder.booking_id.in_(booking_ids)).delete(synchronize_session=False)
        db.query(Payment).filter(Payment.booking_id.in_(booking_ids)).update(
            {Payment.booking_id: None}, synchronize_session=False
        )
        db.query(Booking).filter(Booking.user_id == user_id).delete(synchronize_session=False)
        db.query(Payment).filter(Payment.user_id == user_id).delete(synchronize_session=False)
        db.query(NotificationSetting).filter(NotificationSetting.user_id == user_id).delete(
            synchronize_session=False
        )
        db.query(TeamMember).filter(TeamMember.user_id == user_id).delete(synchronize_session=False)
        db.query(ConnectedCalendar).filter(ConnectedCalendar.user_id == user_id).delete(
            synchronize_session=False
        )
        db.query(DateOverride).filter(DateOverride.user_id == user_id).delete(synchronize_session=False)
        db.query(Availability).filter(Availability.user_id == user_id).delete(synchronize_session=False)
        db.query(EventType).filter(EventType.user_id == user_id).delete(synchronize_session=False)
        db.query(AuditLog).filter(AuditLog.user_id == user_id).delete(synchronize_session=False)
        db.query(User).filter(User.id == user_id).delete(synchronize_session=False)

    @staticmethod
    def anonymize_bookings(db: Session, user_id: str) -> int:
        return (
            db.query(Booking)
            .filter(Booking.user_id == user_id)
            .update(
                {
                    Booking.guest_name: "Anonymous",
                    Booking.guest_email: "anonymous@anonymous.local",
                    Booking.guest_phone: None,
                    Booking.custom_responses: None,
                    Booking.notes: None,
                },
                synchronize_session=False,
            )
        )

    @staticmethod
    def list_due_for_deletion(db: Session, now: datetime) -> list[User]:
        return (
            db.query(User)
            .filter(User.deletion_scheduled_at.isnot(None), User.deletion_scheduled_at <= now)
            .all()
        )
