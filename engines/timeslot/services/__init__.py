"""
Bakery Timeslot Engine — Application Service
===============================================
CalendarProvider     store hours + blackout dates
SlotGenerator        pure derivation of slots for a date range
SlotCapacityStore    atomic reserve / release / move of slot capacity
TimeslotService      generation + calendar maintenance facade

Invariant: 0 <= reserved_count <= max_capacity for every slot, under
any interleaving of concurrent reserve/release/move calls.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, time
from typing import Dict, Iterator, List, Optional, Protocol, Set, Tuple

from core.commands.errors import SlotUnavailable, ValidationError
from core.commands.rejection import ReasonCode
from core.config.rules import FulfillmentSettings
from core.primitives.locks import KeyedLockRegistry, LockTimeout
from core.time.temporal import DayWindow, iter_dates
from engines.timeslot.commands import (
    BlackoutDate,
    GenerateSlotsRequest,
    GenerationResult,
    StoreHours,
    Timeslot,
)
from engines.timeslot.policies import (
    calendar_policy,
    reservation_policy,
    slot_must_exist_policy,
)

logger = logging.getLogger("bakery.timeslots")


# ══════════════════════════════════════════════════════════════
# CALENDAR
# ══════════════════════════════════════════════════════════════

class CalendarProvider(Protocol):
    def get_store_hours(self, weekday: int) -> Optional[StoreHours]: ...

    def set_store_hours(self, hours: StoreHours) -> StoreHours: ...

    def is_blackout(self, day: date) -> bool: ...

    def add_blackout(self, blackout: BlackoutDate) -> BlackoutDate: ...

    def remove_blackout(self, day: date) -> bool: ...

    def list_blackouts(self) -> List[BlackoutDate]: ...


class InMemoryCalendar:
    def __init__(self):
        self._hours: Dict[int, StoreHours] = {}
        self._blackouts: Dict[date, BlackoutDate] = {}
        self._lock = threading.Lock()

    def get_store_hours(self, weekday: int) -> Optional[StoreHours]:
        return self._hours.get(weekday)

    def set_store_hours(self, hours: StoreHours) -> StoreHours:
        with self._lock:
            self._hours[hours.weekday] = hours
        return hours

    def is_blackout(self, day: date) -> bool:
        return day in self._blackouts

    def add_blackout(self, blackout: BlackoutDate) -> BlackoutDate:
        with self._lock:
            self._blackouts[blackout.blackout_date] = blackout
        return blackout

    def remove_blackout(self, day: date) -> bool:
        with self._lock:
            return self._blackouts.pop(day, None) is not None

    def list_blackouts(self) -> List[BlackoutDate]:
        with self._lock:
            return sorted(self._blackouts.values(), key=lambda b: b.blackout_date)


# ══════════════════════════════════════════════════════════════
# SLOT GENERATOR (pure)
# ══════════════════════════════════════════════════════════════

class SlotGenerator:
    def __init__(self, calendar: CalendarProvider):
        self._calendar = calendar

    def generate(
        self,
        start_date: date,
        end_date: date,
        fulfillment_type: str,
        capacity: int,
        windows,
    ) -> List[Timeslot]:
        """
        One slot per window per open date in [start_date, end_date].

        Blackout dates and closed weekdays produce nothing. Windows
        are clipped to that weekday's opening hours; a window that
        clips to nothing is dropped. A weekday without StoreHours is
        open all day. When two windows start at the same time after
        clipping, only the first one yields a slot.
        """
        slots: List[Timeslot] = []
        seen: Set[Tuple[date, time, str]] = set()
        for day in iter_dates(start_date, end_date):
            if calendar_policy(day, self._calendar) is not None:
                continue
            hours = self._calendar.get_store_hours(day.weekday())
            for window in windows:
                clipped: Optional[DayWindow] = window
                if hours is not None:
                    clipped = window.clip(hours.open_time, hours.close_time)
                if clipped is None:
                    continue
                slot = Timeslot.create(day, clipped, fulfillment_type, capacity)
                if slot.identity in seen:
                    continue
                seen.add(slot.identity)
                slots.append(slot)
        return slots


# ══════════════════════════════════════════════════════════════
# SLOT CAPACITY STORE
# ══════════════════════════════════════════════════════════════

class SlotCapacityStore(Protocol):
    def reserve(self, slot_id: str) -> Timeslot: ...

    def release(self, slot_id: str) -> Optional[Timeslot]: ...

    def move(self, order_id: str, from_slot_id: str, to_slot_id: str) -> Timeslot: ...

    def get(self, slot_id: str) -> Optional[Timeslot]: ...

    def list_available(
        self, start_date: date, end_date: date, fulfillment_type: Optional[str] = None,
    ) -> List[Timeslot]: ...

    def upsert(self, slot: Timeslot) -> Tuple[Timeslot, bool]: ...

    def set_capacity(self, slot_id: str, max_capacity: int) -> Timeslot: ...

    def set_blocked(self, slot_id: str, is_blocked: bool) -> Timeslot: ...

    def delete(self, slot_id: str) -> None: ...


@contextmanager
def _slot_locks(locks: KeyedLockRegistry, *slot_ids: str) -> Iterator[None]:
    try:
        with locks.hold(*slot_ids):
            yield
    except LockTimeout as exc:
        logger.warning(f"Slot lock timeout on {exc.key} after {exc.timeout}s")
        raise SlotUnavailable(
            "This timeslot is busy, please try again.",
            code=ReasonCode.SLOT_LOCK_TIMEOUT,
            policy_name="slot_lock_policy",
        ) from exc


class InMemorySlotCapacityStore:
    """
    Thread-safe slot store. Each slot has its own lock; `move` takes
    both slot locks in sorted order, so concurrent moves between the
    same two slots in opposite directions cannot deadlock.
    """

    def __init__(self, calendar: CalendarProvider, *, lock_timeout: float = 2.0):
        self._calendar = calendar
        self._slots: Dict[str, Timeslot] = {}
        self._locks = KeyedLockRegistry(timeout=lock_timeout)

    def _check_reservable(self, slot_id: str) -> Timeslot:
        slot = self._slots.get(slot_id)
        rejection = reservation_policy(slot, slot_id, self._calendar)
        if rejection is not None:
            raise SlotUnavailable.from_reason(rejection)
        return slot

    def _require(self, slot_id: str) -> Timeslot:
        slot = self._slots.get(slot_id)
        rejection = slot_must_exist_policy(slot, slot_id)
        if rejection is not None:
            raise SlotUnavailable.from_reason(rejection)
        return slot

    def reserve(self, slot_id: str) -> Timeslot:
        with _slot_locks(self._locks, slot_id):
            slot = self._check_reservable(slot_id)
            updated = replace(slot, reserved_count=slot.reserved_count + 1)
            self._slots[slot_id] = updated
        logger.debug(f"Slot {slot_id} reserved ({updated.reserved_count}/{updated.max_capacity})")
        return updated

    def release(self, slot_id: str) -> Optional[Timeslot]:
        with _slot_locks(self._locks, slot_id):
            slot = self._slots.get(slot_id)
            if slot is None:
                logger.warning(f"Release of unknown slot {slot_id} ignored")
                return None
            updated = replace(slot, reserved_count=max(slot.reserved_count - 1, 0))
            self._slots[slot_id] = updated
        return updated

    def move(self, order_id: str, from_slot_id: str, to_slot_id: str) -> Timeslot:
        if from_slot_id == to_slot_id:
            return self._require(to_slot_id)
        with _slot_locks(self._locks, from_slot_id, to_slot_id):
            source = self._require(from_slot_id)
            target = self._check_reservable(to_slot_id)
            moved = replace(target, reserved_count=target.reserved_count + 1)
            self._slots[from_slot_id] = replace(
                source, reserved_count=max(source.reserved_count - 1, 0),
            )
            self._slots[to_slot_id] = moved
        logger.info(f"Order {order_id} moved from slot {from_slot_id} to {to_slot_id}")
        return moved

    def get(self, slot_id: str) -> Optional[Timeslot]:
        return self._slots.get(slot_id)

    def list_available(
        self, start_date: date, end_date: date, fulfillment_type: Optional[str] = None,
    ) -> List[Timeslot]:
        return sorted(
            (
                s for s in list(self._slots.values())
                if start_date <= s.slot_date <= end_date
                and (fulfillment_type is None or s.fulfillment_type == fulfillment_type)
                and not s.is_blocked
                and not s.is_full
            ),
            key=lambda s: (s.slot_date, s.start_time, s.fulfillment_type),
        )

    def upsert(self, slot: Timeslot) -> Tuple[Timeslot, bool]:
        """Insert if absent. An existing slot is returned untouched."""
        with _slot_locks(self._locks, slot.slot_id):
            existing = self._slots.get(slot.slot_id)
            if existing is not None:
                return existing, False
            self._slots[slot.slot_id] = slot
            return slot, True

    def set_capacity(self, slot_id: str, max_capacity: int) -> Timeslot:
        if isinstance(max_capacity, bool) or not isinstance(max_capacity, int) or max_capacity < 0:
            raise ValidationError("max_capacity must be a non-negative integer.")
        with _slot_locks(self._locks, slot_id):
            slot = self._require(slot_id)
            if max_capacity < slot.reserved_count:
                raise ValidationError(
                    f"Capacity {max_capacity} is below the {slot.reserved_count} "
                    f"orders already booked.",
                    code=ReasonCode.SLOT_IN_USE,
                )
            updated = replace(slot, max_capacity=max_capacity)
            self._slots[slot_id] = updated
        return updated

    def set_blocked(self, slot_id: str, is_blocked: bool) -> Timeslot:
        with _slot_locks(self._locks, slot_id):
            updated = replace(self._require(slot_id), is_blocked=is_blocked)
            self._slots[slot_id] = updated
        return updated

    def delete(self, slot_id: str) -> None:
        with _slot_locks(self._locks, slot_id):
            slot = self._require(slot_id)
            if slot.reserved_count > 0:
                raise SlotUnavailable(
                    f"Cannot delete timeslot with {slot.reserved_count} existing "
                    f"orders. Block it instead.",
                    code=ReasonCode.SLOT_IN_USE,
                )
            del self._slots[slot_id]


# ══════════════════════════════════════════════════════════════
# TIMESLOT SERVICE
# ══════════════════════════════════════════════════════════════

class TimeslotService:
    def __init__(
        self,
        *,
        store: SlotCapacityStore,
        calendar: CalendarProvider,
        settings: FulfillmentSettings | None = None,
    ):
        self.store = store
        self.calendar = calendar
        self._settings = settings or FulfillmentSettings()
        self._generator = SlotGenerator(calendar)

    def generate_slots(self, request: GenerateSlotsRequest) -> GenerationResult:
        capacity = request.capacity or self._settings.default_slot_capacity
        created: List[Timeslot] = []
        existing: List[Timeslot] = []
        for slot in self._generator.generate(
            request.start_date, request.end_date,
            request.fulfillment_type, capacity, request.windows,
        ):
            stored, was_created = self.store.upsert(slot)
            (created if was_created else existing).append(stored)
        logger.info(
            f"Generated {request.fulfillment_type} slots "
            f"{request.start_date}..{request.end_date}: "
            f"{len(created)} created, {len(existing)} already present"
        )
        return GenerationResult(created=tuple(created), existing=tuple(existing))

    def list_available(
        self, start_date: date, end_date: date, fulfillment_type: Optional[str] = None,
    ) -> List[Timeslot]:
        return self.store.list_available(start_date, end_date, fulfillment_type)

    def set_store_hours(
        self, weekday: int, open_time, close_time, *, is_closed: bool = False,
    ) -> StoreHours:
        try:
            hours = StoreHours(
                weekday=weekday, open_time=open_time,
                close_time=close_time, is_closed=is_closed,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return self.calendar.set_store_hours(hours)

    def add_blackout_date(self, blackout_date: date, reason: str = "") -> BlackoutDate:
        blackout = self.calendar.add_blackout(BlackoutDate(blackout_date, reason))
        logger.info(f"Blackout date added: {blackout_date} {reason}".rstrip())
        return blackout

    def remove_blackout_date(self, blackout_date: date) -> bool:
        return self.calendar.remove_blackout(blackout_date)

    def check_date(self, slot_date: date) -> None:
        """Raise SlotUnavailable when the date is blacked out or closed."""
        rejection = calendar_policy(slot_date, self.calendar)
        if rejection is not None:
            raise SlotUnavailable.from_reason(rejection)
