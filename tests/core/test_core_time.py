"""
Tests for core.time — Clock protocol and temporal helpers.
"""

import pytest
from datetime import date, datetime, time, timezone, timedelta

from core.time.clock import FixedClock, SystemClock
from core.time.temporal import DayWindow, ValidityWindow, iter_dates, parse_clock_time


# ── Clock Tests ──────────────────────────────────────────────

class TestSystemClock:
    def test_returns_utc_datetime(self):
        clock = SystemClock()
        dt = clock.now_utc()
        assert dt.tzinfo is not None
        assert dt.tzinfo == timezone.utc

    def test_time_advances(self):
        clock = SystemClock()
        t1 = clock.now_utc()
        t2 = clock.now_utc()
        assert t2 >= t1


class TestFixedClock:
    def test_returns_fixed_time(self):
        fixed = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
        clock = FixedClock(fixed)
        assert clock.now_utc() == fixed
        assert clock.now_utc() == fixed  # Same every time

    def test_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2026, 1, 1))

    def test_advance(self):
        fixed = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
        clock = FixedClock(fixed)
        clock.advance(60)
        assert clock.now_utc() == fixed + timedelta(seconds=60)


# ── ValidityWindow Tests ─────────────────────────────────────

class TestValidityWindow:
    def test_contains_is_inclusive(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        end = datetime(2026, 12, 31, tzinfo=timezone.utc)
        window = ValidityWindow(start=start, end=end)

        assert window.contains(datetime(2026, 6, 15, tzinfo=timezone.utc))
        assert window.contains(start)
        assert window.contains(end)
        assert not window.contains(datetime(2025, 12, 31, tzinfo=timezone.utc))
        assert not window.contains(datetime(2027, 1, 1, tzinfo=timezone.utc))

    def test_unset_bounds_are_unbounded(self):
        window = ValidityWindow()
        assert window.contains(datetime(1990, 1, 1, tzinfo=timezone.utc))
        assert window.contains(datetime(2990, 1, 1, tzinfo=timezone.utc))

    def test_started_and_ended(self):
        now = datetime(2026, 10, 19, tzinfo=timezone.utc)
        assert not ValidityWindow(start=now + timedelta(days=1)).has_started(now)
        assert ValidityWindow(end=now - timedelta(seconds=1)).has_ended(now)

    def test_rejects_inverted_window(self):
        with pytest.raises(ValueError, match="must be <="):
            ValidityWindow(
                start=datetime(2026, 2, 1, tzinfo=timezone.utc),
                end=datetime(2026, 1, 1, tzinfo=timezone.utc),
            )


# ── DayWindow Tests ──────────────────────────────────────────

class TestDayWindow:
    def test_parse(self):
        window = DayWindow.parse("09:00", "11:30")
        assert window.start == time(9, 0)
        assert window.end == time(11, 30)

    def test_rejects_empty_window(self):
        with pytest.raises(ValueError, match="before end"):
            DayWindow.parse("11:00", "11:00")

    def test_clip_inside_hours(self):
        window = DayWindow.parse("09:00", "11:00")
        assert window.clip(time(8, 0), time(17, 0)) == window

    def test_clip_partial_overlap(self):
        window = DayWindow.parse("07:00", "09:00")
        assert window.clip(time(8, 0), time(17, 0)) == DayWindow.parse("08:00", "09:00")

    def test_clip_outside_hours(self):
        window = DayWindow.parse("18:00", "20:00")
        assert window.clip(time(8, 0), time(17, 0)) is None


class TestTemporalFunctions:
    def test_parse_clock_time(self):
        assert parse_clock_time("07:05") == time(7, 5)
        assert parse_clock_time(time(7, 5)) == time(7, 5)

    def test_parse_clock_time_rejects_garbage(self):
        with pytest.raises(ValueError, match="HH:MM"):
            parse_clock_time("7am")

    def test_iter_dates_inclusive(self):
        days = list(iter_dates(date(2026, 10, 30), date(2026, 11, 2)))
        assert days == [
            date(2026, 10, 30), date(2026, 10, 31),
            date(2026, 11, 1), date(2026, 11, 2),
        ]

    def test_iter_dates_rejects_inverted_range(self):
        with pytest.raises(ValueError):
            list(iter_dates(date(2026, 11, 2), date(2026, 11, 1)))
