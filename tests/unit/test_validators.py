"""Tests for shared validators and date helpers"""

from datetime import datetime

import pytest

from app.shared.dates import parse_date, parse_datetime, to_iso
from app.shared.validators import (
    format_phone_number,
    validate_domain,
    validate_email_address,
    validate_hex_color,
    validate_phone_number,
    validate_time,
    validate_username,
)


class TestUsername:
    def test_accepts_lowercase_digits_hyphen_underscore(self):
        assert validate_username("jane_doe-42") == "jane_doe-42"

    @pytest.mark.parametrize(
        "value, message",
        [
            ("ab", "Username must be at least 3 characters"),
            ("a" * 31, "Username must be less than 30 characters"),
            ("Jane", "Username can only contain lowercase letters, numbers, hyphens, and underscores"),
        ],
    )
    def test_rejects_with_first_failing_rule(self, value, message):
        with pytest.raises(ValueError, match=message):
            validate_username(value)


class TestDomain:
    def test_normalizes_case_and_whitespace(self):
        assert validate_domain("  Book.Example.COM ") == "book.example.com"

    def test_missing_domain(self):
        with pytest.raises(ValueError, match="Domain is required"):
            validate_domain("")

    @pytest.mark.parametrize("value", ["-bad.com", "bad_domain.com", "a..b.com"])
    def test_invalid_format(self, value):
        with pytest.raises(ValueError, match="Invalid domain format"):
            validate_domain(value)


class TestPhone:
    @pytest.mark.parametrize("value", ["+14155552671", "(415) 555-2671", "+44 20 7946 0958"])
    def test_valid_numbers(self, value):
        assert validate_phone_number(value) is True

    @pytest.mark.parametrize("value", [None, "", "12345", "+1234"])
    def test_invalid_numbers(self, value):
        assert validate_phone_number(value) is False

    def test_format_assumes_country_code(self):
        assert format_phone_number("(415) 555-2671") == "+14155552671"
        assert format_phone_number("14155552671") == "+14155552671"


def test_time_format():
    assert validate_time("09:30") == "09:30"
    with pytest.raises(ValueError, match="Invalid time format"):
        validate_time("25:00")


def test_hex_color():
    assert validate_hex_color("#0a84FF") == "#0a84FF"
    with pytest.raises(ValueError, match="Invalid color format"):
        validate_hex_color("blue")


def test_email_address():
    assert validate_email_address("guest@example.com") == "guest@example.com"
    with pytest.raises(ValueError, match="Invalid email address"):
        validate_email_address("not-an-email")


def test_parse_datetime_normalizes_to_naive_utc():
    assert parse_datetime("2025-01-06T09:00:00-05:00") == datetime(2025, 1, 6, 14, 0)
    assert parse_datetime("2025-01-06T14:00:00Z") == datetime(2025, 1, 6, 14, 0)
    with pytest.raises(ValueError):
        parse_datetime("tomorrow-ish")


@pytest.mark.parametrize("value", ["5", "Jan 6", "06/01/2025 14:00", "Monday 2pm"])
def test_parse_datetime_rejects_non_iso_input(value):
    with pytest.raises(ValueError, match="Invalid date format"):
        parse_datetime(value)


def test_parse_datetime_accepts_iso_variants():
    assert parse_datetime("2025-01-06T14:00:00.000Z") == datetime(2025, 1, 6, 14, 0)
    assert parse_datetime("2025-01-06") == datetime(2025, 1, 6)


def test_parse_date_accepts_full_timestamps():
    assert parse_date("2025-01-06T14:00:00Z").isoformat() == "2025-01-06"


def test_to_iso_appends_z():
    assert to_iso(datetime(2025, 1, 6, 14, 0)) == "2025-01-06T14:00:00.000Z"
    assert to_iso(None) is None
