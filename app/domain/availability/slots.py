"""Slot arithmetic - pure helpers for turning availability windows into bookable slots

Windows are wall-clock HH:mm strings in the host's timezone; every datetime
returned here is naive UTC, matching what is stored in the database.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

SLOT_INTERVAL_MINUTES = 15


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def day_of_week(day: date) -> int:
    """Sunday = 0 ... Saturday = 6"""
    return (day.weekday() + 1) % 7


def local_to_utc(day: date, hhmm: str, zone: ZoneInfo) -> datetime:
    minutes = time_to_minutes(hhmm)
    local = datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=zone)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def day_bounds(day: date, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC bounds of a calendar day in the given zone"""
    start = datetime.combine(day, time(0, 0), tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=zone)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def window_bounds(day: date, start: str, end: str, zone: ZoneInfo) -> tuple[datetime, datetime]:
    return local_to_utc(day, start, zone), local_to_utc(day, end, zone)


def overlaps(start: datetime, end: datetime, busy_start: datetime, busy_end: datetime) -> bool:
    """Slot [start, end) collides with a busy interval"""
    return (
        (busy_start <= start < busy_end)
        or (busy_start < end <= busy_end)
        or (start <= busy_start and end >= busy_end)
    )


def widen(
    start: datetime, end: datetime, before: Optional[int], after: Optional[int]
) -> tuple[datetime, datetime]:
    """Extend a booking by its event type's buffer minutes"""
    return start - timedelta(minutes=before or 0), end + timedelta(minutes=after or 0)


def generate_slots(
    day: date,
    windows: Iterable[tuple[str, str]],
    duration: int,
    zone: ZoneInfo,
    busy: Iterable[tuple[datetime, datetime]] = (),
    interval: int = SLOT_INTERVAL_MINUTES,
) -> list[tuple[datetime, datetime]]:
    """
    Candidate slots start every ``interval`` minutes inside each window and
    must fit ``duration``; slots overlapping any busy interval are dropped.
    """
    busy = list(busy)
    step = timedelta(minutes=interval)
    length = timedelta(minutes=duration)
    slots = []

    for window_start, window_end in windows:
        current, limit = window_bounds(day, window_start, window_end, zone)
        while current + length <= limit:
            slot_end = current + length
            if not any(overlaps(current, slot_end, b_start, b_end) for b_start, b_end in busy):
                slots.append((current, slot_end))
            current += step

    slots.sort()
    return slots


def render_in_zone(value: datetime, zone: ZoneInfo) -> str:
    """ISO 8601 with the zone's offset for a naive UTC datetime"""
    return value.replace(tzinfo=timezone.utc).astimezone(zone).isoformat()
