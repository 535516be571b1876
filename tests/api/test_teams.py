"""Tests for team management and invitations over HTTP"""

from unittest.mock import AsyncMock, patch

import pytest

from tests.conftest import auth_headers_for


@pytest.fixture
def team(client, auth_headers):
    response = client.post("/api/teams", json={"name": "Sales", "slug": "sales"}, headers=auth_headers)
    return response.json()["team"]


@pytest.fixture
def mock_invitation():
    with patch("app.domain.teams.service.send_team_invitation", new=AsyncMock()) as send:
        yield send


def _invite(client, team, auth_headers, email="bob@example.com", role="MEMBER"):
    return client.post(f"/api/teams/{team['id']}/members", json={"email": email, "role": role}, headers=auth_headers)


def test_creator_becomes_owner(client, host, team):
    assert team["slug"] == "sales"
    assert [(m["userId"], m["role"], m["accepted"]) for m in team["members"]] == [(host.id, "OWNER", True)]


def test_team_slug_is_validated(client, auth_headers):
    response = client.post("/api/teams", json={"name": "Sales", "slug": "no"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Slug must be at least 3 characters"}


def test_check_slug(client, auth_headers, team):
    assert client.get("/api/teams/check-slug", params={"slug": "sales"}, headers=auth_headers).json() == {
        "available": False
    }
    assert client.get("/api/teams/check-slug", params={"slug": "support"}, headers=auth_headers).json() == {
        "available": True
    }


def test_invitation_flow(client, other_user, team, auth_headers, mock_invitation):
    invited = _invite(client, team, auth_headers)

    assert invited.status_code == 201
    assert invited.json()["member"]["accepted"] is False
    mock_invitation.assert_awaited_once()
    bob = auth_headers_for(other_user)
    assert client.get("/api/teams", headers=bob).json()["teams"] == []

    accepted = client.post(f"/api/teams/{team['id']}/accept", headers=bob)

    assert accepted.json()["member"]["accepted"] is True
    assert [t["id"] for t in client.get("/api/teams", headers=bob).json()["teams"]] == [team["id"]]


def test_declined_invitation_is_removed(client, other_user, team, auth_headers, mock_invitation):
    _invite(client, team, auth_headers)
    bob = auth_headers_for(other_user)

    assert client.post(f"/api/teams/{team['id']}/decline", headers=bob).json() == {"success": True}
    assert client.post(f"/api/teams/{team['id']}/accept", headers=bob).status_code == 404


def test_invite_twice_is_rejected(client, other_user, team, auth_headers, mock_invitation):
    _invite(client, team, auth_headers)

    response = _invite(client, team, auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "User is already a member of this team"}


def test_invite_unknown_email(client, team, auth_headers, mock_invitation):
    response = _invite(client, team, auth_headers, email="nobody@example.com")

    assert response.status_code == 404
    assert response.json() == {"error": "User not found with this email"}


def test_non_members_cannot_see_team(client, other_user, team):
    response = client.get(f"/api/teams/{team['id']}", headers=auth_headers_for(other_user))

    assert response.status_code == 403


def test_plain_members_cannot_invite(client, db, other_user, team, auth_headers, mock_invitation):
    _invite(client, team, auth_headers)
    bob = auth_headers_for(other_user)
    client.post(f"/api/teams/{team['id']}/accept", headers=bob)

    response = _invite(client, team, bob, email="alice@example.com")

    assert response.status_code == 403


def test_owner_role_is_fixed(client, team, auth_headers):
    owner = team["members"][0]

    response = client.patch(
        f"/api/teams/{team['id']}/members/{owner['id']}", json={"role": "MEMBER"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "The owner role cannot be changed"}


def test_last_owner_cannot_leave(client, team, auth_headers):
    owner = team["members"][0]

    response = client.delete(f"/api/teams/{team['id']}/members/{owner['id']}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot remove the last owner of the team"}


def test_owner_deletes_team(client, team, auth_headers):
    assert client.delete(f"/api/teams/{team['id']}", headers=auth_headers).json() == {"success": True}
    assert client.get(f"/api/teams/{team['id']}", headers=auth_headers).status_code == 404


def test_team_availability_requires_timezone(client, team, auth_headers, schedule):
    response = client.get(
        f"/api/teams/{team['id']}/availability",
        params={"date": "2030-01-07", "duration": 30},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "timezone is required"}
