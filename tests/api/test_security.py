"""Tests for two-factor authentication and the audit log"""

import pyotp
import pytest

from app.models import AuditLog, User


@pytest.fixture
def enrolled(client, db, host, auth_headers):
    """Enable 2FA for the host and return the plaintext secret and backup codes"""
    setup = client.post("/api/auth/2fa/setup", headers=auth_headers).json()
    code = pyotp.TOTP(setup["secret"]).now()
    client.post(
        "/api/auth/2fa/enable",
        json={"secret": setup["secret"], "code": code, "backupCodes": setup["backupCodes"]},
        headers=auth_headers,
    )
    return setup


def test_setup_returns_qr_and_codes(client, auth_headers):
    setup = client.post("/api/auth/2fa/setup", headers=auth_headers).json()

    assert setup["qrCodeUrl"].startswith("otpauth://totp/")
    assert setup["qrCode"].startswith("data:image/png;base64,")
    assert len(setup["backupCodes"]) == 10


def test_enable_stores_encrypted_secret(client, db, host, enrolled):
    db.expire_all()
    user = db.get(User, host.id)

    assert user.two_factor_enabled is True
    assert user.two_factor_secret != enrolled["secret"]
    assert len(user.backup_codes) == 10
    assert enrolled["backupCodes"][0] not in user.backup_codes


def test_enable_rejects_wrong_code(client, auth_headers):
    setup = client.post("/api/auth/2fa/setup", headers=auth_headers).json()

    response = client.post(
        "/api/auth/2fa/enable",
        json={"secret": setup["secret"], "code": "000000", "backupCodes": setup["backupCodes"]},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid verification code"}


def test_enable_requires_every_field(client, auth_headers):
    response = client.post("/api/auth/2fa/enable", json={"code": "123456"}, headers=auth_headers)

    assert response.json() == {"error": "Missing required fields"}


def test_verify_with_totp(client, auth_headers, enrolled):
    code = pyotp.TOTP(enrolled["secret"]).now()

    assert client.post("/api/auth/2fa/verify", json={"code": code}, headers=auth_headers).json() == {
        "success": True
    }


def test_backup_code_is_single_use(client, auth_headers, enrolled):
    backup = enrolled["backupCodes"][0]

    first = client.post("/api/auth/2fa/verify", json={"code": backup}, headers=auth_headers)
    second = client.post("/api/auth/2fa/verify", json={"code": backup}, headers=auth_headers)

    assert first.status_code == 200
    assert second.status_code == 400
    assert client.get("/api/auth/2fa/backup-codes", headers=auth_headers).json() == {"count": 9}


def test_failed_verification_is_audited(client, db, auth_headers, enrolled):
    client.post("/api/auth/2fa/verify", json={"code": "WRONG-CODE"}, headers=auth_headers)

    assert db.query(AuditLog).filter(AuditLog.action == "LOGIN_FAILED").count() == 1


def test_regenerate_requires_enabled(client, auth_headers):
    response = client.post("/api/auth/2fa/backup-codes", headers=auth_headers)

    assert response.json() == {"error": "Two-factor authentication is not enabled"}


def test_disable(client, db, host, auth_headers, enrolled):
    client.post("/api/auth/2fa/disable", headers=auth_headers)

    db.expire_all()
    user = db.get(User, host.id)
    assert user.two_factor_enabled is False
    assert user.two_factor_secret is None


def test_audit_logs_are_scoped_and_filtered(client, auth_headers, enrolled):
    response = client.get("/api/audit/logs", params={"action": "TWO_FACTOR_ENABLED"}, headers=auth_headers)

    body = response.json()
    assert body["total"] == 1
    assert body["logs"][0]["resource"] == "security"


def test_security_overview(client, auth_headers, enrolled):
    client.post("/api/auth/2fa/verify", json={"code": "WRONG-CODE"}, headers=auth_headers)

    overview = client.get("/api/audit/security", headers=auth_headers).json()

    assert [e["action"] for e in overview["loginHistory"]] == ["LOGIN_FAILED"]
    assert "TWO_FACTOR_ENABLED" in [e["action"] for e in overview["securityEvents"]]
