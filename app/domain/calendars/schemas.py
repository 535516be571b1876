"""Calendar schemas"""

from typing import Optional

from pydantic import BaseModel

from ...models import ConnectedCalendar
from ...shared.dates import to_iso


class DisconnectCalendarRequest(BaseModel):
    calendarId: Optional[str] = None


def calendar_to_response(calendar: ConnectedCalendar) -> dict:
    """Public view of a connection; tokens never leave the server"""
    return {
        "id": calendar.id,
        "provider": calendar.provider,
        "calendarId": calendar.calendar_id,
        "calendarName": calendar.calendar_name,
        "isPrimary": calendar.is_primary,
        "createdAt": to_iso(calendar.created_at),
    }


def event_to_response(event: dict) -> dict:
    return {**event, "start": to_iso(event["start"]), "end": to_iso(event["end"])}
