"""Shared validation utilities"""

import re
import uuid
from typing import Optional
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from .dates import is_valid_timezone

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)
SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
USERNAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")
DOMAIN_PATTERN = re.compile(
    r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$",
    re.IGNORECASE,
)
CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_time(value: str) -> str:
    """Validate an HH:mm wall-clock time"""
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValueError("Invalid time format (HH:mm)")
    return value


def validate_hex_color(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not HEX_COLOR_PATTERN.match(value):
        raise ValueError("Invalid color format")
    return value


def validate_url(value: Optional[str], message: str = "Invalid URL") -> Optional[str]:
    """Accept absolute http(s) URLs only"""
    if value is None:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(message)
    return value


def validate_slug(value: str) -> str:
    if not SLUG_PATTERN.match(value):
        raise ValueError("Slug can only contain lowercase letters, numbers, and hyphens")
    return value


def validate_username(value: str) -> str:
    """
    Validate a public username.

    Raises:
        ValueError: With the first failing rule's message
    """
    if len(value) < 3:
        raise ValueError("Username must be at least 3 characters")
    if len(value) > 30:
        raise ValueError("Username must be less than 30 characters")
    if not USERNAME_PATTERN.match(value):
        raise ValueError(
            "Username can only contain lowercase letters, numbers, hyphens, and underscores"
        )
    return value


def validate_domain(domain: Optional[str]) -> str:
    """
    Validate a custom domain name.

    Returns:
        Lowercase, stripped domain

    Raises:
        ValueError: If domain format is invalid
    """
    if not domain:
        raise ValueError("Domain is required")
    domain = domain.strip().lower()
    if len(domain) < 3 or not DOMAIN_PATTERN.match(domain):
        raise ValueError("Invalid domain format")
    return domain


def validate_timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not is_valid_timezone(value):
        raise ValueError("Invalid timezone")
    return value


def validate_currency(value: str) -> str:
    if not CURRENCY_PATTERN.match(value or ""):
        raise ValueError("Currency must be a 3-letter code")
    return value.upper()


def validate_phone_number(phone: Optional[str]) -> bool:
    """
    Check a phone number for SMS delivery.

    International numbers must start with + and be 11-16 characters long
    after stripping formatting; anything else must be exactly 10 digits.
    """
    if not phone:
        return False
    cleaned = re.sub(r"[^\d+]", "", phone)
    if cleaned.startswith("+"):
        return 11 <= len(cleaned) <= 16 and cleaned[1:].isdigit()
    return len(cleaned) == 10 and cleaned.isdigit()


def format_phone_number(phone: str, country_code: str = "+1") -> str:
    """Normalize a phone number to E.164, assuming the default country code"""
    cleaned = re.sub(r"[^\d+]", "", phone)
    if cleaned.startswith("+"):
        return cleaned
    if len(cleaned) == 11 and cleaned.startswith(country_code.lstrip("+")):
        return f"+{cleaned}"
    return f"{country_code}{cleaned}"


def validate_email_address(value: Optional[str]) -> str:
    """Syntax-only email check; deliverability is never probed"""
    try:
        return validate_email(value or "", check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValueError("Invalid email address") from e
