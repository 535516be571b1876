"""Tests for data export, account deletion and consent"""

from app.models import AuditLog, Booking, User


def test_export_is_a_json_attachment(client, host, auth_headers, booking):
    response = client.get("/api/privacy/export", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-disposition"] == f'attachment; filename="user-data-{host.id}.json"'
    export = response.json()
    assert export["user"]["email"] == "alice@example.com"
    assert export["summary"]["totalBookings"] == 1
    assert export["bookings"][0]["reminders"] == []


def test_export_is_audited(client, db, auth_headers):
    client.get("/api/privacy/export", headers=auth_headers)

    assert db.query(AuditLog).filter(AuditLog.action == "DATA_EXPORTED").count() == 1


def test_immediate_deletion_requires_confirmation(client, auth_headers):
    response = client.post("/api/privacy/delete", json={"immediate": True}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Account deletion must be confirmed"}


def test_immediate_deletion_removes_everything(client, db, host, auth_headers, booking):
    host_id = host.id
    response = client.post(
        "/api/privacy/delete", json={"immediate": True, "confirm": True}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Account deleted successfully"
    db.expire_all()
    assert db.get(User, host_id) is None
    assert db.query(Booking).count() == 0


def test_scheduled_deletion_can_be_cancelled(client, db, host, auth_headers):
    scheduled = client.post("/api/privacy/delete", json={"immediate": False}, headers=auth_headers)

    assert scheduled.json()["message"] == "Account deletion scheduled"
    assert scheduled.json()["deletionDate"].endswith("Z")
    db.expire_all()
    assert db.get(User, host.id).deletion_scheduled_at is not None

    cancelled = client.delete("/api/privacy/delete", headers=auth_headers)

    assert cancelled.json() == {"success": True, "message": "Account deletion cancelled"}
    db.expire_all()
    assert db.get(User, host.id).deletion_scheduled_at is None


def test_empty_delete_request_schedules_deletion(client, db, host, auth_headers):
    response = client.post("/api/privacy/delete", json={}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Account deletion scheduled"
    assert "deletionDate" in response.json()
    db.expire_all()
    assert db.get(User, host.id).deletion_scheduled_at is not None


def test_consent_defaults_and_updates(client, auth_headers):
    initial = client.get("/api/privacy/consent", headers=auth_headers).json()

    assert initial["consent"] == {"dataProcessing": True, "marketing": False, "analytics": False}
    assert "deletedAccounts" in initial["retentionPolicy"]

    updated = client.put("/api/privacy/consent", json={"marketing": True}, headers=auth_headers).json()

    assert updated["consent"] == {"dataProcessing": True, "marketing": True, "analytics": False}
    assert client.get("/api/privacy/consent", headers=auth_headers).json()["consent"]["marketing"] is True


def test_privacy_endpoints_require_auth(client):
    assert client.get("/api/privacy/export").status_code == 401
    assert client.post("/api/privacy/delete", json={}).status_code == 401
