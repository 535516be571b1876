"""Tests for the host analytics endpoints"""

from datetime import timedelta

from app.shared.dates import utc_now
from tests.conftest import auth_headers_for


def _range(days_back: int = 1, days_forward: int = 1) -> dict:
    today = utc_now().date()
    return {
        "startDate": (today - timedelta(days=days_back)).isoformat(),
        "endDate": (today + timedelta(days=days_forward)).isoformat(),
    }


def test_export_csv(client, auth_headers, booking):
    response = client.get("/api/analytics/export", params=_range(), headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="bookings-export.csv"'
    lines = response.text.split("\r\n")
    assert lines[0].startswith("bookingId,eventType,guestName")
    assert booking.id in lines[1]
    assert "Intro Call" in lines[1]


def test_empty_export_is_a_message(client, auth_headers):
    response = client.get("/api/analytics/export", params=_range(), headers=auth_headers)

    assert response.status_code == 200
    assert response.text == "No data to export"


def test_export_json(client, auth_headers, booking):
    response = client.get("/api/analytics/export", params={**_range(), "format": "json"}, headers=auth_headers)

    rows = response.json()["data"]
    assert [row["bookingId"] for row in rows] == [booking.id]
    assert rows[0]["duration"] == 30


def test_export_rejects_unknown_format(client, auth_headers):
    response = client.get("/api/analytics/export", params={**_range(), "format": "xml"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid export format"}


def test_export_requires_dates(client, auth_headers):
    response = client.get("/api/analytics/export", headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "startDate and endDate are required"}


def test_trends_fill_every_day(client, auth_headers, booking):
    trends = client.get("/api/analytics/trends", params=_range(2, 2), headers=auth_headers).json()["trends"]

    assert len(trends) == 5
    today = next(t for t in trends if t["date"] == utc_now().date().isoformat())
    assert today == {"date": today["date"], "count": 1, "confirmed": 1, "cancelled": 0}


def test_trends_reject_inverted_range(client, auth_headers):
    today = utc_now().date()
    params = {"startDate": today.isoformat(), "endDate": (today - timedelta(days=3)).isoformat()}

    response = client.get("/api/analytics/trends", params=params, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "endDate must be after startDate"}


def test_metrics_default_to_last_30_days(client, auth_headers, booking):
    metrics = client.get("/api/analytics/metrics", headers=auth_headers).json()

    assert metrics["totalBookings"] == 1
    assert metrics["upcomingBookings"] == 1
    assert metrics["cancellationRate"] == 0.0


def test_event_type_stats(client, auth_headers, event_type, booking):
    stats = client.get("/api/analytics/event-types", headers=auth_headers).json()["eventTypes"]

    assert stats[0]["eventTypeName"] == "Intro Call"
    assert stats[0]["conversionRate"] == 100.0


def test_popular_times(client, auth_headers, booking):
    params = _range(0, 8)

    popular = client.get("/api/analytics/popular-times", params=params, headers=auth_headers).json()

    assert popular["popularTimes"][0]["hour"] == 10
    assert popular["popularTimes"][0]["count"] == 1


def test_analytics_only_cover_the_caller(client, other_user, booking):
    metrics = client.get("/api/analytics/metrics", headers=auth_headers_for(other_user)).json()

    assert metrics["totalBookings"] == 0
