"""
Video Conferencing Service
Creates meeting links for video location types. Zoom meetings are created
through the Zoom API when a Server-to-Server OAuth app is configured;
otherwise, and for Google Meet and Microsoft Teams, a provider-shaped link
is generated.
"""

import logging
import secrets
import string
from datetime import datetime
from typing import Optional

import httpx

from ..config import ZOOM_ACCOUNT_ID, ZOOM_CLIENT_ID, ZOOM_CLIENT_SECRET

logger = logging.getLogger(__name__)

ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"  # noqa: S105 - OAuth endpoint URL
ZOOM_API_URL = "https://api.zoom.us/v2"

VIDEO_LOCATION_TYPES = {"VIDEO_ZOOM", "VIDEO_GOOGLE_MEET", "VIDEO_TEAMS"}

LOCATION_LABELS = {
    "VIDEO_ZOOM": "Zoom Meeting",
    "VIDEO_GOOGLE_MEET": "Google Meet",
    "VIDEO_TEAMS": "Microsoft Teams",
    "PHONE": "Phone Call",
    "IN_PERSON": "In Person",
    "CUSTOM": "Custom Location",
}


def is_video_conference(location_type: Optional[str]) -> bool:
    return location_type in VIDEO_LOCATION_TYPES


def get_location_type_label(location_type: Optional[str]) -> str:
    return LOCATION_LABELS.get(location_type or "", "Location TBD")


def _random_digits(length: int) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


def _random_letters(length: int) -> str:
    return "".join(secrets.choice(string.ascii_lowercase) for _ in range(length))


async def _create_zoom_meeting(title: str, start: datetime, duration: int) -> dict:
    async with httpx.AsyncClient() as client:
        token_response = await client.post(
            ZOOM_TOKEN_URL,
            params={"grant_type": "account_credentials", "account_id": ZOOM_ACCOUNT_ID},
            auth=(ZOOM_CLIENT_ID, ZOOM_CLIENT_SECRET),
            timeout=10.0,
        )
        token_response.raise_for_status()
        access_token = token_response.json()["access_token"]

        response = await client.post(
            f"{ZOOM_API_URL}/users/me/meetings",
            headers={"Authorization": f"Bearer {access_token}"},
            json={
                "topic": title,
                "type": 2,
                "start_time": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "duration": duration,
                "settings": {"join_before_host": False, "waiting_room": True},
            },
            timeout=10.0,
        )
        response.raise_for_status()
        meeting = response.json()

    return {
        "provider": "zoom",
        "meetingId": str(meeting.get("id")),
        "meetingLink": meeting.get("join_url"),
        "meetingPassword": meeting.get("password"),
    }


def _placeholder_meeting(location_type: str) -> dict:
    if location_type == "VIDEO_ZOOM":
        meeting_id = _random_digits(11)
        return {
            "provider": "zoom",
            "meetingId": meeting_id,
            "meetingLink": f"https://zoom.us/j/{meeting_id}",
            "meetingPassword": _random_digits(6),
        }
    if location_type == "VIDEO_GOOGLE_MEET":
        code = f"{_random_letters(3)}-{_random_letters(4)}-{_random_letters(3)}"
        return {
            "provider": "google_meet",
            "meetingId": code,
            "meetingLink": f"https://meet.google.com/{code}",
            "meetingPassword": None,
        }
    thread_id = secrets.token_hex(16)
    return {
        "provider": "teams",
        "meetingId": thread_id,
        "meetingLink": f"https://teams.microsoft.com/l/meetup-join/19%3ameeting_{thread_id}%40thread.v2/0",
        "meetingPassword": None,
    }


async def create_meeting(
    location_type: str,
    title: str,
    start: datetime,
    end: datetime,
) -> dict:
    """
    Create a meeting for a video location type.

    Returns:
        dict with provider, meetingId, meetingLink and meetingPassword

    Raises:
        ValueError: If the location type is not a video conference
        httpx.HTTPError: If the provider API call fails
    """
    if not is_video_conference(location_type):
        raise ValueError(f"{location_type} is not a video conference location")

    duration = int((end - start).total_seconds() // 60)

    if location_type == "VIDEO_ZOOM" and ZOOM_ACCOUNT_ID and ZOOM_CLIENT_ID and ZOOM_CLIENT_SECRET:
        meeting = await _create_zoom_meeting(title, start, duration)
        logger.info(f"✅ Zoom meeting created: {meeting['meetingId']}")
        return meeting

    meeting = _placeholder_meeting(location_type)
    logger.info(f"🔗 Generated {meeting['provider']} meeting link")
    return meeting
