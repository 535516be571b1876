"""Tests for the arq worker jobs"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from app.models import AuditLog, Reminder, User
from app.shared.dates import utc_now
from app.worker import (
    WorkerSettings,
    cleanup_audit_logs_task,
    get_redis_settings,
    process_reminders_task,
    purge_deleted_accounts_task,
)


def test_redis_settings_from_url(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "rediss://default:pw@cache.internal:6380")

    settings = get_redis_settings()

    assert (settings.host, settings.port, settings.password, settings.ssl) == ("cache.internal", 6380, "pw", True)


def test_every_job_is_registered():
    registered = {f.__name__ for f in WorkerSettings.functions}

    assert registered == {
        "process_reminders_task",
        "retry_failed_reminders_task",
        "purge_deleted_accounts_task",
        "cleanup_audit_logs_task",
    }
    assert len(WorkerSettings.cron_jobs) == 4


def test_reminder_job_delivers_due_reminders(db, booking):
    db.add(Reminder(booking_id=booking.id, type="EMAIL", scheduled_for=utc_now() - timedelta(minutes=1)))
    db.commit()

    with patch("app.domain.notifications.service.send_reminder_email", new=AsyncMock()):
        result = asyncio.run(process_reminders_task({}))

    assert result == {"processed": 1}


def test_purge_job_removes_expired_accounts(db, host):
    host.deletion_scheduled_at = utc_now() - timedelta(days=1)
    db.commit()
    host_id = host.id

    result = asyncio.run(purge_deleted_accounts_task({}))

    assert result == {"purged": 1}
    db.expire_all()
    assert db.get(User, host_id) is None


def test_audit_cleanup_job(db, host):
    db.add(AuditLog(user_id=host.id, action="DATA_EXPORTED", created_at=utc_now() - timedelta(days=200)))
    db.commit()

    assert asyncio.run(cleanup_audit_logs_task({})) == {"deleted": 1}
