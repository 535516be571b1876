"""Tests for authentication, profiles and usernames"""

from app.models import User
from tests.conftest import auth_headers_for, make_token


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/users/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_tampered_token_is_unauthorized(client, host):
    token = make_token(host.id, host.email) + "x"

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_expired_token_is_flagged(client, host):
    token = make_token(host.id, host.email, expires_in=-60)

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.headers.get("X-Token-Expired") == "true"


def test_first_request_creates_profile(client, db):
    token = make_token("33333333-3333-3333-3333-333333333333", "Carol.Smith@example.com")

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["username"] == "carolsmith"
    assert db.get(User, "33333333-3333-3333-3333-333333333333") is not None


def test_username_availability_is_case_sensitive(client, host):
    assert client.post("/api/users/check-username", json={"username": "alice"}).json() == {"available": False}
    assert client.post("/api/users/check-username", json={"username": "Alice"}).json() == {"available": True}


def test_username_check_can_exclude_own_row(client, host):
    response = client.post(
        "/api/users/check-username", json={"username": "alice", "excludeUserId": host.id}
    )
    assert response.json() == {"available": True}


def test_signup_check_reports_conflict(client, host):
    response = client.post("/api/auth/check-username", json={"username": "alice"})

    assert response.status_code == 409
    assert response.json() == {"error": "Username is already taken", "available": False}


def test_update_username_validates_format(client, host, auth_headers):
    response = client.patch(f"/api/users/{host.id}/username", json={"username": "Al"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Username must be at least 3 characters"}


def test_update_username_rejects_taken_name(client, host, other_user, auth_headers):
    response = client.patch(f"/api/users/{host.id}/username", json={"username": "bob"}, headers=auth_headers)

    assert response.status_code == 409


def test_cannot_update_someone_elses_profile(client, host, other_user):
    response = client.patch(
        f"/api/users/{host.id}", json={"name": "Mallory"}, headers=auth_headers_for(other_user)
    )

    assert response.status_code == 403


def test_public_profile_hides_private_fields(client, host, event_type):
    response = client.get("/api/public/users/alice")

    assert response.status_code == 200
    body = response.json()
    assert "email" not in body["user"]
    assert [et["slug"] for et in body["eventTypes"]] == ["intro-call"]
