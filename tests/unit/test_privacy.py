"""Tests for account deletion, anonymisation and the scheduled purge"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.domain.privacy.repository import PrivacyRepository
from app.domain.privacy.service import anonymize_user_data, delete_user_account, purge_scheduled_deletions
from app.models import Availability, Booking, EventType, Payment, Reminder, User
from app.shared.dates import utc_now


def _counts(db, user_id):
    return {
        "users": db.query(User).filter(User.id == user_id).count(),
        "event_types": db.query(EventType).filter(EventType.user_id == user_id).count(),
        "bookings": db.query(Booking).filter(Booking.user_id == user_id).count(),
        "availability": db.query(Availability).filter(Availability.user_id == user_id).count(),
    }


def test_delete_removes_user_and_dependents(db, host, schedule, booking):
    db.add(Reminder(booking_id=booking.id, type="EMAIL", scheduled_for=booking.start_time - timedelta(hours=1)))
    db.commit()
    host_id = host.id

    delete_user_account(db, host_id)

    db.expire_all()
    assert _counts(db, host_id) == {"users": 0, "event_types": 0, "bookings": 0, "availability": 0}
    assert db.query(Reminder).count() == 0


def test_failed_delete_leaves_every_row(db, host, schedule, booking):
    before = _counts(db, host.id)

    def partial_delete(session, user_id):
        session.query(Availability).filter(Availability.user_id == user_id).delete(synchronize_session=False)
        raise SQLAlchemyError("connection lost")

    with patch.object(PrivacyRepository, "delete_account_data", side_effect=partial_delete):
        with pytest.raises(SQLAlchemyError):
            delete_user_account(db, host.id)

    db.expire_all()
    assert _counts(db, host.id) == before


def test_anonymize_keeps_bookings_without_personal_data(db, host, booking):
    anonymize_user_data(db, host.id)

    db.expire_all()
    user = db.get(User, host.id)
    assert user.email == f"deleted-{host.id}@anonymous.local"
    assert user.name == "Deleted User"
    kept = db.get(Booking, booking.id)
    assert kept.guest_name == "Anonymous"
    assert kept.guest_email == "anonymous@anonymous.local"


def test_purge_deletes_or_anonymizes_due_accounts(db, host, other_user, booking):
    host.deletion_scheduled_at = utc_now() - timedelta(days=1)
    other_user.deletion_scheduled_at = utc_now() - timedelta(days=1)
    db.add(Payment(booking_id=booking.id, user_id=host.id, amount=25.0, status="SUCCEEDED"))
    db.commit()
    host_id, other_id = host.id, other_user.id

    assert purge_scheduled_deletions(db) == 2

    db.expire_all()
    assert db.get(User, other_id) is None
    # Financial records keep the host row, anonymised
    assert db.get(User, host_id).name == "Deleted User"


def test_purge_ignores_accounts_still_in_grace_period(db, host):
    host.deletion_scheduled_at = utc_now() + timedelta(days=10)
    db.commit()

    assert purge_scheduled_deletions(db) == 0
    assert db.get(User, host.id) is not None
