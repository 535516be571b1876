"""
Calendar Provider Service
OAuth and event reads for Google Calendar and Microsoft Outlook (Graph API)
"""

import base64
import json
import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from ..config import (
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REDIRECT_URI,
    MICROSOFT_CLIENT_ID,
    MICROSOFT_CLIENT_SECRET,
    MICROSOFT_REDIRECT_URI,
)
from ..models import ConnectedCalendar
from ..shared.crypto import decrypt_value, encrypt_value
from ..shared.dates import parse_datetime, utc_now

logger = logging.getLogger(__name__)

# Google OAuth URLs
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/userinfo.email",
]

# Microsoft identity platform URLs
MICROSOFT_AUTH_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"  # noqa: S105
MICROSOFT_GRAPH_API = "https://graph.microsoft.com/v1.0"
MICROSOFT_SCOPES = ["offline_access", "User.Read", "Calendars.ReadWrite"]


class CalendarProviderError(Exception):
    """A calendar provider rejected a request"""


# ============================================================================
# OAUTH STATE
# ============================================================================


def encode_state(user_id: str) -> str:
    return base64.urlsafe_b64encode(json.dumps({"userId": user_id}).encode()).decode()


def decode_state(state: Optional[str]) -> Optional[str]:
    """Return the user id carried in an OAuth state parameter, or None"""
    if not state:
        return None
    try:
        padded = state + "=" * (-len(state) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode()))
    except (ValueError, json.JSONDecodeError):
        return None
    user_id = data.get("userId") if isinstance(data, dict) else None
    return user_id if isinstance(user_id, str) else None


def build_google_auth_url(user_id: str) -> str:
    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": " ".join(GOOGLE_CALENDAR_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
        "state": encode_state(user_id),
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def build_outlook_auth_url(user_id: str) -> str:
    params = {
        "client_id": MICROSOFT_CLIENT_ID,
        "redirect_uri": MICROSOFT_REDIRECT_URI,
        "response_type": "code",
        "response_mode": "query",
        "scope": " ".join(MICROSOFT_SCOPES),
        "state": encode_state(user_id),
    }
    return f"{MICROSOFT_AUTH_URL}?{urlencode(params)}"


# ============================================================================
# CODE EXCHANGE
# ============================================================================


async def exchange_google_code(code: str) -> dict:
    """
    Exchange an authorization code and look up the primary calendar.

    Returns:
        dict with access_token, refresh_token, expires_at, account_id,
        calendar_id and calendar_name
    """
    async with httpx.AsyncClient() as client:
        token_response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "redirect_uri": GOOGLE_REDIRECT_URI,
                "grant_type": "authorization_code",
            },
        )
        if token_response.status_code != 200:
            logger.error(f"❌ Google token exchange failed: {token_response.text}")
            raise CalendarProviderError("token_exchange_failed")

        tokens = token_response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            raise CalendarProviderError("invalid_token_response")

        calendar_response = await client.get(
            f"{GOOGLE_CALENDAR_API}/users/me/calendarList/primary",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        calendar_data = calendar_response.json() if calendar_response.status_code == 200 else {}

    calendar_id = calendar_data.get("id", "primary")
    return {
        "access_token": access_token,
        "refresh_token": tokens.get("refresh_token"),
        "expires_at": utc_now() + timedelta(seconds=tokens.get("expires_in", 3600)),
        "account_id": calendar_id,
        "calendar_id": calendar_id,
        "calendar_name": calendar_data.get("summary", "Google Calendar"),
    }


async def exchange_outlook_code(code: str) -> dict:
    async with httpx.AsyncClient() as client:
        token_response = await client.post(
            MICROSOFT_TOKEN_URL,
            data={
                "code": code,
                "client_id": MICROSOFT_CLIENT_ID,
                "client_secret": MICROSOFT_CLIENT_SECRET,
                "redirect_uri": MICROSOFT_REDIRECT_URI,
                "grant_type": "authorization_code",
                "scope": " ".join(MICROSOFT_SCOPES),
            },
        )
        if token_response.status_code != 200:
            logger.error(f"❌ Microsoft token exchange failed: {token_response.text}")
            raise CalendarProviderError("token_exchange_failed")

        tokens = token_response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            raise CalendarProviderError("invalid_token_response")

        headers = {"Authorization": f"Bearer {access_token}"}
        me_response = await client.get(f"{MICROSOFT_GRAPH_API}/me", headers=headers)
        calendar_response = await client.get(f"{MICROSOFT_GRAPH_API}/me/calendar", headers=headers)

    me = me_response.json() if me_response.status_code == 200 else {}
    calendar_data = calendar_response.json() if calendar_response.status_code == 200 else {}
    return {
        "access_token": access_token,
        "refresh_token": tokens.get("refresh_token"),
        "expires_at": utc_now() + timedelta(seconds=tokens.get("expires_in", 3600)),
        "account_id": me.get("id"),
        "calendar_id": calendar_data.get("id", "primary"),
        "calendar_name": calendar_data.get("name", "Outlook Calendar"),
    }


# ============================================================================
# TOKENS & EVENTS
# ============================================================================


async def get_valid_access_token(calendar: ConnectedCalendar, db: Session) -> Optional[str]:
    """
    Get a valid access token, refreshing if necessary
    Returns None if refresh fails
    """
    if calendar.expires_at and calendar.expires_at > utc_now() + timedelta(minutes=5):
        return decrypt_value(calendar.access_token)

    refresh_token = decrypt_value(calendar.refresh_token)
    if not refresh_token:
        logger.warning(f"⚠️ Calendar {calendar.id} token expired and has no refresh token")
        return None

    if calendar.provider == "GOOGLE":
        token_url = GOOGLE_TOKEN_URL
        data = {
            "client_id": GOOGLE_CLIENT_ID,
            "client_secret": GOOGLE_CLIENT_SECRET,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
    else:
        token_url = MICROSOFT_TOKEN_URL
        data = {
            "client_id": MICROSOFT_CLIENT_ID,
            "client_secret": MICROSOFT_CLIENT_SECRET,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "scope": " ".join(MICROSOFT_SCOPES),
        }

    logger.info(f"🔄 Refreshing {calendar.provider} token for calendar {calendar.id}")
    async with httpx.AsyncClient() as client:
        response = await client.post(token_url, data=data)

    if response.status_code != 200:
        logger.error(f"❌ Token refresh failed: {response.text}")
        return None

    tokens = response.json()
    access_token = tokens.get("access_token")
    if not access_token:
        logger.error("❌ No access token in refresh response")
        return None

    calendar.access_token = encrypt_value(access_token)
    if tokens.get("refresh_token"):
        calendar.refresh_token = encrypt_value(tokens["refresh_token"])
    calendar.expires_at = utc_now() + timedelta(seconds=tokens.get("expires_in", 3600))
    db.commit()
    return access_token


def _google_event(item: dict, calendar: ConnectedCalendar) -> Optional[dict]:
    start = item.get("start", {})
    end = item.get("end", {})
    start_value = start.get("dateTime") or start.get("date")
    end_value = end.get("dateTime") or end.get("date")
    if not start_value or not end_value or item.get("status") == "cancelled":
        return None
    return {
        "id": item.get("id"),
        "title": item.get("summary", "Busy"),
        "start": parse_datetime(start_value),
        "end": parse_datetime(end_value),
        "calendarId": calendar.id,
        "provider": calendar.provider,
    }


def _outlook_event(item: dict, calendar: ConnectedCalendar) -> Optional[dict]:
    start = (item.get("start") or {}).get("dateTime")
    end = (item.get("end") or {}).get("dateTime")
    if not start or not end or item.get("isCancelled"):
        return None
    # Graph returns UTC wall-clock times when asked for Prefer: outlook.timezone="UTC"
    return {
        "id": item.get("id"),
        "title": item.get("subject", "Busy"),
        "start": parse_datetime(start),
        "end": parse_datetime(end),
        "calendarId": calendar.id,
        "provider": calendar.provider,
    }


async def fetch_events(
    calendar: ConnectedCalendar, db: Session, start: datetime, end: datetime
) -> list[dict]:
    """
    Fetch events between start and end (naive UTC) from a connected calendar.

    Raises:
        CalendarProviderError: If the token is unusable or the provider call fails
    """
    access_token = await get_valid_access_token(calendar, db)
    if not access_token:
        raise CalendarProviderError("token_unavailable")

    headers = {"Authorization": f"Bearer {access_token}"}
    async with httpx.AsyncClient() as client:
        if calendar.provider == "GOOGLE":
            response = await client.get(
                f"{GOOGLE_CALENDAR_API}/calendars/{calendar.calendar_id}/events",
                headers=headers,
                params={
                    "timeMin": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "timeMax": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "singleEvents": "true",
                    "orderBy": "startTime",
                    "maxResults": 250,
                },
            )
        else:
            headers["Prefer"] = 'outlook.timezone="UTC"'
            response = await client.get(
                f"{MICROSOFT_GRAPH_API}/me/calendarView",
                headers=headers,
                params={
                    "startDateTime": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "endDateTime": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "$top": 250,
                },
            )

    if response.status_code != 200:
        logger.error(f"❌ {calendar.provider} events request failed: {response.status_code}")
        raise CalendarProviderError("events_request_failed")

    payload = response.json()
    items = payload.get("items", []) if calendar.provider == "GOOGLE" else payload.get("value", [])
    parser = _google_event if calendar.provider == "GOOGLE" else _outlook_event
    events = [parser(item, calendar) for item in items]
    return [event for event in events if event is not None]
