"""Tests for event type management and the public event page"""

from app.models import EventType
from tests.conftest import auth_headers_for

EVENT_TYPE = {"title": "Strategy Session", "slug": "strategy", "duration": 45}


def test_create_event_type(client, auth_headers):
    response = client.post("/api/event-types", json=EVENT_TYPE, headers=auth_headers)

    assert response.status_code == 201
    event_type = response.json()["eventType"]
    assert event_type["slug"] == "strategy"
    assert event_type["duration"] == 45
    assert event_type["locationType"] == "VIDEO_ZOOM"
    assert event_type["isActive"] is True


def test_duplicate_slug_gets_numeric_suffix(client, auth_headers):
    client.post("/api/event-types", json=EVENT_TYPE, headers=auth_headers)
    response = client.post("/api/event-types", json=EVENT_TYPE, headers=auth_headers)

    assert response.json()["eventType"]["slug"] == "strategy-1"


def test_duration_bounds(client, auth_headers):
    response = client.post("/api/event-types", json={**EVENT_TYPE, "duration": 500}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Duration must be between 5 and 480 minutes"}


def test_slug_format(client, auth_headers):
    response = client.post("/api/event-types", json={**EVENT_TYPE, "slug": "Not Valid"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Slug can only contain lowercase letters, numbers, and hyphens"}


def test_check_slug(client, auth_headers, event_type):
    taken = client.get("/api/event-types/check-slug", params={"slug": "intro-call"}, headers=auth_headers)
    free = client.get("/api/event-types/check-slug", params={"slug": "other"}, headers=auth_headers)

    assert taken.json() == {"available": False}
    assert free.json() == {"available": True}


def test_other_users_cannot_read_event_type(client, event_type, other_user):
    response = client.get(f"/api/event-types/{event_type.id}", headers=auth_headers_for(other_user))

    assert response.status_code == 403


def test_update_and_deactivate(client, auth_headers, event_type):
    response = client.patch(
        f"/api/event-types/{event_type.id}", json={"isActive": False, "price": 25}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["eventType"]["isActive"] is False
    assert response.json()["eventType"]["price"] == 25


def test_duplicate_event_type(client, auth_headers, event_type):
    response = client.post(f"/api/event-types/{event_type.id}/duplicate", headers=auth_headers)

    assert response.status_code == 201
    copy = response.json()["eventType"]
    assert copy["slug"] == "intro-call-copy"
    assert copy["title"] == "Intro Call (Copy)"


def test_delete_event_type(client, auth_headers, event_type):
    assert client.delete(f"/api/event-types/{event_type.id}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/event-types/{event_type.id}", headers=auth_headers).status_code == 404


def test_public_event_type_page(client, event_type):
    response = client.get("/api/public/users/alice/event-types/intro-call")

    assert response.status_code == 200
    assert response.json()["eventType"]["title"] == "Intro Call"


def test_inactive_event_type_is_not_public(client, db, event_type):
    event_type.is_active = False
    db.commit()

    assert client.get("/api/public/users/alice/event-types/intro-call").status_code == 404


def test_list_is_cached_until_event_types_change(client, db, host, auth_headers, event_type):
    assert len(client.get("/api/event-types", headers=auth_headers).json()["eventTypes"]) == 1

    db.add(EventType(user_id=host.id, title="Imported", slug="imported", duration=15))
    db.commit()
    assert len(client.get("/api/event-types", headers=auth_headers).json()["eventTypes"]) == 1

    client.post("/api/event-types", json=EVENT_TYPE, headers=auth_headers)
    titles = {et["title"] for et in client.get("/api/event-types", headers=auth_headers).json()["eventTypes"]}
    assert titles == {"Intro Call", "Imported", "Strategy Session"}
