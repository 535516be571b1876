"""Tests for audit logging, suspicious activity detection and retention"""

from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from app.domain.security.repository import AuditRepository
from app.domain.security.service import (
    cleanup_old_audit_logs,
    create_audit_log,
    detect_suspicious_activity,
    generate_backup_codes,
)
from app.models import AuditLog
from app.shared.dates import utc_now


def _log(db, user_id, action, ip="10.0.0.1", age=timedelta(0)):
    db.add(AuditLog(user_id=user_id, action=action, ip_address=ip, created_at=utc_now() - age))
    db.commit()


def test_create_audit_log_never_raises(db, host):
    with patch.object(AuditRepository, "create", side_effect=SQLAlchemyError("db down")):
        assert create_audit_log(db, "LOGIN_SUCCESS", user_id=host.id) is None


def test_five_failed_logins_are_suspicious(db, host):
    for _ in range(5):
        _log(db, host.id, "LOGIN_FAILED")

    assert detect_suspicious_activity(db, host.id) is True
    assert db.query(AuditLog).filter(AuditLog.action == "SUSPICIOUS_ACTIVITY").count() == 1


def test_old_failures_do_not_count(db, host):
    for _ in range(5):
        _log(db, host.id, "LOGIN_FAILED", age=timedelta(hours=2))

    assert detect_suspicious_activity(db, host.id) is False


def test_logins_from_many_addresses_are_suspicious(db, host):
    for ip in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
        _log(db, host.id, "LOGIN_SUCCESS", ip=ip)

    assert detect_suspicious_activity(db, host.id) is True


def test_cleanup_keeps_recent_entries(db, host):
    _log(db, host.id, "DATA_EXPORTED", age=timedelta(days=120))
    _log(db, host.id, "DATA_EXPORTED", age=timedelta(days=5))

    assert cleanup_old_audit_logs(db) == 1
    assert db.query(AuditLog).count() == 1


def test_backup_code_format():
    codes = generate_backup_codes()

    assert len(codes) == 10
    assert all(len(code) == 9 and code[4] == "-" for code in codes)
