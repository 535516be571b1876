"""Tests for slot arithmetic"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from app.domain.availability.slots import (
    day_bounds,
    day_of_week,
    generate_slots,
    local_to_utc,
    overlaps,
    render_in_zone,
    widen,
)

UTC = ZoneInfo("UTC")
NEW_YORK = ZoneInfo("America/New_York")


def test_day_of_week_starts_on_sunday():
    assert day_of_week(date(2025, 6, 1)) == 0  # Sunday
    assert day_of_week(date(2025, 6, 7)) == 6  # Saturday


def test_local_to_utc_follows_daylight_saving():
    # EDT is UTC-4, EST is UTC-5
    assert local_to_utc(date(2025, 7, 1), "09:00", NEW_YORK) == datetime(2025, 7, 1, 13, 0)
    assert local_to_utc(date(2025, 1, 6), "09:00", NEW_YORK) == datetime(2025, 1, 6, 14, 0)


def test_day_bounds_cover_a_local_day():
    start, end = day_bounds(date(2025, 1, 6), NEW_YORK)
    assert start == datetime(2025, 1, 6, 5, 0)
    assert end == datetime(2025, 1, 7, 5, 0)


@pytest.mark.parametrize(
    "busy, expected",
    [
        ((datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 9, 30)), True),
        ((datetime(2025, 1, 1, 9, 45), datetime(2025, 1, 1, 11, 0)), True),
        ((datetime(2025, 1, 1, 9, 10), datetime(2025, 1, 1, 9, 20)), True),
        ((datetime(2025, 1, 1, 10, 0), datetime(2025, 1, 1, 10, 30)), False),
        ((datetime(2025, 1, 1, 8, 0), datetime(2025, 1, 1, 9, 0)), False),
    ],
)
def test_overlaps_treats_intervals_as_half_open(busy, expected):
    start, end = datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0)
    assert overlaps(start, end, *busy) is expected


def test_widen_applies_buffers_and_ignores_none():
    start, end = datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 9, 30)
    assert widen(start, end, 10, 15) == (datetime(2025, 1, 1, 8, 50), datetime(2025, 1, 1, 9, 45))
    assert widen(start, end, None, None) == (start, end)


def test_generate_slots_steps_every_fifteen_minutes_and_fits_duration():
    slots = generate_slots(date(2025, 1, 6), [("09:00", "10:00")], 30, UTC)
    assert [s.strftime("%H:%M") for s, _ in slots] == ["09:00", "09:15", "09:30"]
    assert all((e - s).total_seconds() == 1800 for s, e in slots)


def test_generate_slots_drops_busy_intervals():
    busy = [(datetime(2025, 1, 6, 9, 15), datetime(2025, 1, 6, 9, 45))]
    slots = generate_slots(date(2025, 1, 6), [("09:00", "10:30")], 30, UTC, busy)
    assert [s.strftime("%H:%M") for s, _ in slots] == ["09:45", "10:00"]


def test_generate_slots_sorts_across_windows():
    windows = [("14:00", "14:30"), ("09:00", "09:30")]
    slots = generate_slots(date(2025, 1, 6), windows, 30, UTC)
    assert [s.hour for s, _ in slots] == [9, 14]


def test_generate_slots_empty_when_duration_exceeds_window():
    assert generate_slots(date(2025, 1, 6), [("09:00", "09:20")], 30, UTC) == []


def test_render_in_zone_uses_zone_offset():
    assert render_in_zone(datetime(2025, 1, 6, 14, 0), NEW_YORK) == "2025-01-06T09:00:00-05:00"
