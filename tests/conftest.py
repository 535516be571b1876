"""
Pytest configuration and fixtures for the scheduler API test suite.
"""

import os
from datetime import datetime, time, timedelta, timezone

import pytest

# Set test environment variables before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-at-least-32-characters"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"
os.environ["REDIS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CSRF_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
for _name in ("RESEND_API_KEY", "STRIPE_SECRET_KEY", "TWILIO_ACCOUNT_SID", "ZOOM_CLIENT_ID", "SUPABASE_ANON_KEY"):
    os.environ.pop(_name, None)

from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.cache import cache  # noqa: E402
from app.database import Base, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Availability, Booking, EventType, User  # noqa: E402
from app.shared.dates import utc_now  # noqa: E402

# The app engine is an in-memory SQLite database on a StaticPool, so the
# sessions opened by background tasks see the same data as the tests.
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_token(user_id: str, email: str, expires_in: int = 3600, **claims) -> str:
    """Sign an access token the way the identity provider does"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        **claims,
    }
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user.id, user.email)}"}


def next_weekday_at(hour: int, days_ahead: int = 7) -> datetime:
    """A naive UTC datetime a week out, on the hour"""
    day = utc_now().date() + timedelta(days=days_ahead)
    return datetime.combine(day, time(hour, 0))


@pytest.fixture(autouse=True)
def reset_state():
    Base.metadata.create_all(bind=engine)
    cache.clear()
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


def create_user(db, user_id: str, email: str, username: str, **fields) -> User:
    user = User(id=user_id, email=email, username=username, name=username.title(), **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def host(db):
    return create_user(db, "11111111-1111-1111-1111-111111111111", "alice@example.com", "alice")


@pytest.fixture
def other_user(db):
    return create_user(db, "22222222-2222-2222-2222-222222222222", "bob@example.com", "bob")


@pytest.fixture
def auth_headers(host):
    return auth_headers_for(host)


@pytest.fixture
def schedule(db, host):
    """09:00-17:00 UTC every day of the week"""
    rows = [
        Availability(user_id=host.id, day_of_week=day, start_time="09:00", end_time="17:00")
        for day in range(7)
    ]
    db.add_all(rows)
    db.commit()
    return rows


@pytest.fixture
def event_type(db, host):
    event_type = EventType(
        user_id=host.id,
        title="Intro Call",
        slug="intro-call",
        duration=30,
        location_type="IN_PERSON",
        location_details="Main office",
        minimum_notice=0,
        buffer_time_before=0,
        buffer_time_after=0,
        max_booking_window=60,
        custom_questions=[],
    )
    db.add(event_type)
    db.commit()
    db.refresh(event_type)
    return event_type


@pytest.fixture
def booking(db, host, event_type):
    start = next_weekday_at(10)
    booking = Booking(
        event_type_id=event_type.id,
        user_id=host.id,
        guest_name="Guest Person",
        guest_email="guest@example.com",
        guest_timezone="UTC",
        start_time=start,
        end_time=start + timedelta(minutes=30),
        status="CONFIRMED",
        reschedule_token="reschedule-token-123",
        cancel_token="cancel-token-123",
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
