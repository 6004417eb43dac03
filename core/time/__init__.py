"""
Bakery Core Time — Public API
================================
Explicit clock protocol and temporal helpers.
Doctrine: NO datetime.now() in engine logic.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
)
from core.time.temporal import (
    DayWindow,
    ValidityWindow,
    iter_dates,
    parse_clock_time,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "DayWindow",
    "ValidityWindow",
    "iter_dates",
    "parse_clock_time",
]
