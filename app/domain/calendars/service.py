"""Calendar service - Connecting Google/Outlook calendars and reading busy time"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ConnectedCalendar, User
from ...services import calendar_service
from ...services.calendar_service import CalendarProviderError
from ...shared.crypto import encrypt_value
from ...shared.dates import utc_now
from ..availability.slots import overlaps
from .repository import CalendarRepository

logger = logging.getLogger(__name__)

PROVIDERS = {"google": "GOOGLE", "outlook": "OUTLOOK"}
SYNC_WINDOW_DAYS = 30


class CalendarService:
    """Service layer for connected calendars"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CalendarRepository()

    def list_calendars(self, user: User) -> list[ConnectedCalendar]:
        return self.repo.list_for_user(self.db, user.id)

    @staticmethod
    def get_connect_url(provider: str, user: User) -> str:
        if provider == "GOOGLE":
            return calendar_service.build_google_auth_url(user.id)
        return calendar_service.build_outlook_auth_url(user.id)

    async def handle_callback(
        self, provider: str, code: Optional[str], state: Optional[str], error: Optional[str] = None
    ) -> ConnectedCalendar:
        """
        Finish the OAuth dance and store the primary calendar.

        Raises:
            CalendarProviderError: With a short reason used in the redirect URL
        """
        if error:
            raise CalendarProviderError(error)
        if not code:
            raise CalendarProviderError("missing_code")
        user_id = calendar_service.decode_state(state)
        if not user_id or not self.db.get(User, user_id):
            raise CalendarProviderError("invalid_state")

        if provider == "GOOGLE":
            result = await calendar_service.exchange_google_code(code)
        else:
            result = await calendar_service.exchange_outlook_code(code)

        calendar = self.repo.get_by_provider_calendar(self.db, user_id, provider, result["calendar_id"])
        if calendar is None:
            calendar = ConnectedCalendar(
                user_id=user_id,
                provider=provider,
                calendar_id=result["calendar_id"],
                is_primary=not self.repo.list_for_user(self.db, user_id),
            )
        calendar.provider_account_id = result["account_id"]
        calendar.access_token = encrypt_value(result["access_token"])
        if result.get("refresh_token"):
            calendar.refresh_token = encrypt_value(result["refresh_token"])
        calendar.expires_at = result["expires_at"]
        calendar.calendar_name = result["calendar_name"]

        calendar = self.repo.save(self.db, calendar)
        logger.info(f"✅ {provider} calendar connected for user {user_id}")
        return calendar

    def disconnect(self, user: User, calendar_id: Optional[str]) -> None:
        if not calendar_id:
            raise HTTPException(status_code=400, detail="Calendar ID is required")
        calendar = self.repo.get_for_user(self.db, user.id, calendar_id)
        if not calendar:
            raise HTTPException(status_code=404, detail="Calendar not found")
        self.repo.delete(self.db, calendar)
        logger.info(f"🔌 Calendar {calendar_id} disconnected for user {user.id}")

    async def get_events(self, user_id: str, start: datetime, end: datetime) -> list[dict]:
        """Events across every connected calendar; a failing calendar is skipped"""
        events = []
        for calendar in self.repo.list_for_user(self.db, user_id):
            try:
                events.extend(await calendar_service.fetch_events(calendar, self.db, start, end))
            except Exception as e:
                logger.error(f"❌ Failed to read {calendar.provider} calendar {calendar.id}: {e}")
        return sorted(events, key=lambda event: event["start"])

    async def sync(self, user: User) -> list[dict]:
        now = utc_now()
        return await self.get_events(user.id, now, now + timedelta(days=SYNC_WINDOW_DAYS))

    async def check_availability(self, user_id: str, start: datetime, end: datetime) -> dict:
        events = await self.get_events(user_id, start, end)
        conflicts = [e for e in events if overlaps(start, end, e["start"], e["end"])]
        return {"hasConflict": bool(conflicts), "conflictingEvents": conflicts}
