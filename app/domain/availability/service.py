"""Availability service - Weekly schedules, date overrides and slot calculation"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import SHORT, available_slots_key, cache, invalidate_availability
from ...models import Availability, DateOverride, EventType, User
from ...shared.dates import get_zone, parse_date, parse_datetime, to_iso
from ..bookings.repository import BookingRepository
from .repository import AvailabilityRepository, load_weekly_schedule
from .schemas import DateOverrideRequest, WeeklyScheduleItem
from .slots import (
    day_bounds,
    day_of_week,
    generate_slots,
    render_in_zone,
    time_to_minutes,
    widen,
    window_bounds,
)

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service layer for availability business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()
        self.booking_repo = BookingRepository()

    def _get_host(self, user_id: str) -> User:
        host = self.db.get(User, user_id)
        if not host:
            raise HTTPException(status_code=404, detail="User not found")
        return host

    @staticmethod
    def _ensure_owner(user_id: str, current_user: User) -> None:
        if user_id != current_user.id:
            raise HTTPException(status_code=403, detail="Forbidden")

    # ========================================================================
    # WEEKLY SCHEDULE
    # ========================================================================

    def get_schedule(self, user_id: str) -> list[Availability]:
        return self.repo.get_schedule(self.db, user_id)

    def set_schedule(
        self, user_id: str, schedule: list[WeeklyScheduleItem], current_user: User
    ) -> list[Availability]:
        self._ensure_owner(user_id, current_user)
        items = [
            {"day_of_week": s.dayOfWeek, "start_time": s.startTime, "end_time": s.endTime}
            for s in schedule
        ]
        rows = self.repo.replace_schedule(self.db, user_id, items)
        invalidate_availability(user_id)
        logger.info(f"✅ Weekly schedule replaced for user {user_id} ({len(rows)} windows)")
        return rows

    # ========================================================================
    # DATE OVERRIDES
    # ========================================================================

    def get_overrides(
        self, user_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> list[DateOverride]:
        try:
            start = parse_date(start_date) if start_date else None
            end = parse_date(end_date) if end_date else None
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date format") from e
        return self.repo.get_overrides(self.db, user_id, start, end)

    def set_override(
        self, user_id: str, data: DateOverrideRequest, current_user: User
    ) -> DateOverride:
        self._ensure_owner(user_id, current_user)
        override = self.repo.upsert_override(
            self.db,
            user_id,
            parse_date(data.date),
            is_available=data.isAvailable,
            start_time=data.startTime,
            end_time=data.endTime,
        )
        invalidate_availability(user_id)
        return override

    def delete_override(self, user_id: str, day: str, current_user: User) -> None:
        self._ensure_owner(user_id, current_user)
        self.repo.delete_override(self.db, user_id, parse_date(day))
        invalidate_availability(user_id)

    # ========================================================================
    # SLOTS
    # ========================================================================

    def get_windows(self, user_id: str, day: date) -> list[tuple[str, str]]:
        """Availability windows for a day; a date override replaces the weekly schedule"""
        override = self.repo.get_override(self.db, user_id, day)
        if override is not None:
            if override.is_available and override.start_time and override.end_time:
                return [(override.start_time, override.end_time)]
            return []

        weekday = day_of_week(day)
        return [
            (item["startTime"], item["endTime"])
            for item in load_weekly_schedule(self.db, user_id)
            if item["dayOfWeek"] == weekday
        ]

    def _busy_intervals(self, user_id: str, start: datetime, end: datetime) -> list:
        # Buffers can reach past the day boundaries
        bookings = self.booking_repo.list_active_between(
            self.db, user_id, start - timedelta(days=1), end + timedelta(days=1)
        )
        return [
            widen(
                b.start_time,
                b.end_time,
                b.event_type.buffer_time_before if b.event_type else 0,
                b.event_type.buffer_time_after if b.event_type else 0,
            )
            for b in bookings
        ]

    def calculate_slots(
        self, host: User, day: date, duration: int, tz_name: str
    ) -> list[dict]:
        host_zone = get_zone(host.timezone)
        target_zone = get_zone(tz_name)

        windows = self.get_windows(host.id, day)
        if not windows:
            return []

        day_start, day_end = day_bounds(day, host_zone)
        busy = self._busy_intervals(host.id, day_start, day_end)
        return [
            {
                "startTime": render_in_zone(start, target_zone),
                "endTime": render_in_zone(end, target_zone),
                "available": True,
            }
            for start, end in generate_slots(day, windows, duration, host_zone, busy)
        ]

    def get_available_slots(
        self,
        user_id: str,
        day_value: Optional[str],
        duration: Optional[int],
        tz_name: Optional[str],
        event_type_id: Optional[str] = None,
    ) -> list[dict]:
        """Bookable slots for a day, rendered in the requested timezone"""
        if not day_value:
            raise HTTPException(status_code=400, detail="date is required")

        host = self._get_host(user_id)

        if event_type_id and not duration:
            event_type = self.db.get(EventType, event_type_id)
            if event_type and event_type.user_id == host.id:
                duration = event_type.duration
        if not duration or duration <= 0:
            raise HTTPException(status_code=400, detail="duration is required")

        tz_name = tz_name or host.timezone
        try:
            day = parse_date(day_value)
            get_zone(tz_name)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        key = available_slots_key(host.id, day.isoformat(), duration, tz_name, event_type_id)
        return cache.get_or_set(key, lambda: self.calculate_slots(host, day, duration, tz_name), SHORT)

    def check_slot(self, user_id: str, start_value: str, duration: int) -> bool:
        """A slot is free when it sits inside a window and hits no active booking"""
        host = self._get_host(user_id)
        try:
            start = parse_datetime(start_value)
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date format") from e
        end = start + timedelta(minutes=duration)

        if not self.is_within_availability(host, start, end):
            return False
        return not self.booking_repo.find_overlapping(self.db, host.id, start, end)

    def is_within_availability(self, host: User, start: datetime, end: datetime) -> bool:
        host_zone = get_zone(host.timezone)
        local_start = start.replace(tzinfo=timezone.utc).astimezone(host_zone)
        day = local_start.date()
        for window_start, window_end in self.get_windows(host.id, day):
            w_start, w_end = window_bounds(day, window_start, window_end, host_zone)
            if w_start <= start and end <= w_end:
                return True
        return False

    def get_range(self, user_id: str, start_value: Optional[str], end_value: Optional[str]) -> list[dict]:
        """Per-day availability windows between two dates (inclusive)"""
        if not start_value or not end_value:
            raise HTTPException(status_code=400, detail="startDate and endDate are required")
        host = self._get_host(user_id)
        try:
            start_day = parse_date(start_value)
            end_day = parse_date(end_value)
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date format") from e
        if end_day < start_day:
            raise HTTPException(status_code=400, detail="endDate must be after startDate")
        if (end_day - start_day).days > 366:
            raise HTTPException(status_code=400, detail="Date range is too large")

        host_zone = get_zone(host.timezone)
        slots = []
        day = start_day
        while day <= end_day:
            windows = sorted(self.get_windows(host.id, day), key=lambda w: time_to_minutes(w[0]))
            for window_start, window_end in windows:
                w_start, w_end = window_bounds(day, window_start, window_end, host_zone)
                slots.append({"start": to_iso(w_start), "end": to_iso(w_end), "available": True})
            day += timedelta(days=1)
        return slots
