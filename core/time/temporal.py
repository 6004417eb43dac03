"""
Bakery Core Time — Temporal Helpers
======================================
Pure functions and value objects for interval logic.
All functions take explicit arguments — no hidden clock access.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional


# ══════════════════════════════════════════════════════════════
# VALIDITY WINDOW — [start, end] with optional bounds
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ValidityWindow:
    """
    A closed datetime interval where either bound may be unset.

    Unset bounds are unbounded: ValidityWindow(None, None) contains
    every instant.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(
                f"ValidityWindow start ({self.start}) must be <= end ({self.end})."
            )

    def has_started(self, now: datetime) -> bool:
        return self.start is None or now >= self.start

    def has_ended(self, now: datetime) -> bool:
        return self.end is not None and now > self.end

    def contains(self, now: datetime) -> bool:
        """Check if now falls within the window (inclusive)."""
        return self.has_started(now) and not self.has_ended(now)


# ══════════════════════════════════════════════════════════════
# DAY WINDOW — time-of-day interval [start, end)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DayWindow:
    """
    A time-of-day interval, e.g. 09:00–11:00.

    Invariant: start < end (enforced at construction).
    """

    start: time
    end: time

    def __post_init__(self) -> None:
        if not isinstance(self.start, time) or not isinstance(self.end, time):
            raise ValueError("DayWindow bounds must be datetime.time values.")
        if self.start >= self.end:
            raise ValueError(
                f"DayWindow start ({self.start}) must be before end ({self.end})."
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "DayWindow":
        return cls(parse_clock_time(start), parse_clock_time(end))

    def clip(self, open_time: time, close_time: time) -> Optional["DayWindow"]:
        """
        Clip to [open_time, close_time]. Returns None when nothing
        of the window falls inside opening hours.
        """
        start = max(self.start, open_time)
        end = min(self.end, close_time)
        if start >= end:
            return None
        return DayWindow(start, end)


# ══════════════════════════════════════════════════════════════
# PURE TEMPORAL FUNCTIONS
# ══════════════════════════════════════════════════════════════

def parse_clock_time(value) -> time:
    """Parse 'HH:MM' (or pass through a time)."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Clock time must be 'HH:MM', got {value!r}.")
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError as exc:
        raise ValueError(f"Clock time must be 'HH:MM', got {value!r}.") from exc


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield each calendar date in the inclusive range [start, end]."""
    if start > end:
        raise ValueError(f"start ({start}) must be <= end ({end}).")
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
