"""
Bakery Timeslot Engine — Slot & Calendar Records
===================================================
A Timeslot is a bookable (date, window, fulfillment type) with finite
capacity. Its identity is the (date, start_time, fulfillment_type)
tuple, surfaced as a deterministic slot_id so that regenerating an
overlapping range always maps to the same slots.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional, Tuple

from core.commands.errors import ValidationError
from core.primitives.fulfillment import SCHEDULABLE_FULFILLMENT_TYPES
from core.time.temporal import DayWindow, parse_clock_time

MAX_GENERATION_DAYS = 366


def slot_id_for(slot_date: date, start_time: time, fulfillment_type: str) -> str:
    seed = (
        f"bakery-slot:{slot_date.isoformat()}:"
        f"{start_time.strftime('%H:%M')}:{fulfillment_type}"
    )
    return str(uuid.uuid5(uuid.NAMESPACE_URL, seed))


def parse_date(value, field_name: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD, got {value!r}.") from exc


@dataclass(frozen=True)
class Timeslot:
    slot_id: str
    slot_date: date
    start_time: time
    end_time: time
    fulfillment_type: str
    max_capacity: int
    reserved_count: int = 0
    is_blocked: bool = False

    def __post_init__(self):
        if self.fulfillment_type not in SCHEDULABLE_FULFILLMENT_TYPES:
            raise ValueError(
                f"fulfillment_type '{self.fulfillment_type}' cannot be scheduled."
            )
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time.")
        if not isinstance(self.max_capacity, int) or self.max_capacity < 0:
            raise ValueError("max_capacity must be a non-negative integer.")
        if not 0 <= self.reserved_count <= self.max_capacity:
            raise ValueError(
                f"reserved_count {self.reserved_count} outside "
                f"[0, {self.max_capacity}]."
            )

    @classmethod
    def create(
        cls,
        slot_date: date,
        window: DayWindow,
        fulfillment_type: str,
        max_capacity: int,
    ) -> "Timeslot":
        return cls(
            slot_id=slot_id_for(slot_date, window.start, fulfillment_type),
            slot_date=slot_date,
            start_time=window.start,
            end_time=window.end,
            fulfillment_type=fulfillment_type,
            max_capacity=max_capacity,
        )

    @property
    def spots_left(self) -> int:
        return self.max_capacity - self.reserved_count

    @property
    def is_full(self) -> bool:
        return self.reserved_count >= self.max_capacity

    @property
    def identity(self) -> Tuple[date, time, str]:
        return (self.slot_date, self.start_time, self.fulfillment_type)

    def to_dict(self) -> dict:
        return {
            "slot_id": self.slot_id,
            "date": self.slot_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "fulfillment_type": self.fulfillment_type,
            "max_capacity": self.max_capacity,
            "reserved_count": self.reserved_count,
            "spots_left": self.spots_left,
            "is_blocked": self.is_blocked,
        }


@dataclass(frozen=True)
class StoreHours:
    """Opening hours for one weekday (0 = Monday … 6 = Sunday)."""

    weekday: int
    open_time: time
    close_time: time
    is_closed: bool = False

    def __post_init__(self):
        if not isinstance(self.weekday, int) or not 0 <= self.weekday <= 6:
            raise ValueError("weekday must be an integer 0-6.")
        object.__setattr__(self, "open_time", parse_clock_time(self.open_time))
        object.__setattr__(self, "close_time", parse_clock_time(self.close_time))
        if not self.is_closed and self.open_time >= self.close_time:
            raise ValueError("open_time must be before close_time.")


@dataclass(frozen=True)
class BlackoutDate:
    blackout_date: date
    reason: str = ""


@dataclass(frozen=True)
class GenerateSlotsRequest:
    start_date: date
    end_date: date
    fulfillment_type: str
    windows: Tuple[DayWindow, ...]
    capacity: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "start_date", parse_date(self.start_date, "start_date"))
        object.__setattr__(self, "end_date", parse_date(self.end_date, "end_date"))
        if self.fulfillment_type not in SCHEDULABLE_FULFILLMENT_TYPES:
            raise ValidationError(
                f"fulfillment_type '{self.fulfillment_type}' cannot be scheduled."
            )
        if self.start_date > self.end_date:
            raise ValidationError("start_date must be on or before end_date.")
        if (self.end_date - self.start_date).days + 1 > MAX_GENERATION_DAYS:
            raise ValidationError(
                f"Cannot generate more than {MAX_GENERATION_DAYS} days at once."
            )
        if not self.windows:
            raise ValidationError("At least one time window is required.")
        windows = []
        for window in self.windows:
            if isinstance(window, DayWindow):
                windows.append(window)
                continue
            try:
                windows.append(DayWindow.parse(window["start"], window["end"]))
            except (KeyError, TypeError, ValueError) as exc:
                raise ValidationError(f"Invalid time window {window!r}.") from exc
        object.__setattr__(self, "windows", tuple(windows))
        if self.capacity is not None and (
            isinstance(self.capacity, bool)
            or not isinstance(self.capacity, int)
            or self.capacity < 1
        ):
            raise ValidationError("capacity must be a positive integer.")


@dataclass(frozen=True)
class GenerationResult:
    created: Tuple[Timeslot, ...] = field(default_factory=tuple)
    existing: Tuple[Timeslot, ...] = field(default_factory=tuple)

    @property
    def created_count(self) -> int:
        return len(self.created)

    def to_dict(self) -> dict:
        return {
            "created": self.created_count,
            "skipped": len(self.existing),
            "slots": [s.to_dict() for s in self.created + self.existing],
        }
