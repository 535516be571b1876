"""Shared date/time helpers

All datetimes are stored as naive UTC in the database and rendered as ISO 8601
with a trailing ``Z`` on the wire.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Current time as naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO 8601 datetime string into naive UTC.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Invalid date format")
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError) as e:
        raise ValueError("Invalid date format") from e
    return to_naive_utc(parsed)


def parse_date(value: Union[str, date]) -> date:
    """Parse YYYY-MM-DD (or a full datetime) into a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, ValueError) as e:
        raise ValueError("Invalid date format") from e


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Render a naive UTC datetime as ISO 8601 with Z suffix"""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = to_naive_utc(value)
    return value.isoformat(timespec="milliseconds") + "Z"


def get_zone(name: Optional[str]) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the timezone is unknown
    """
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError("Invalid timezone") from e


def is_valid_timezone(name: Optional[str]) -> bool:
    try:
        get_zone(name)
        return True
    except ValueError:
        return False
