"""
Bakery Fulfillment Store - DB-backed Stores
===========================================
Django implementations of the slot, calendar, promo and order
stores the engines consume.

Capacity and usage counters are changed only by single-statement
conditional updates:

    UPDATE bakery_timeslots
       SET reserved_count = reserved_count + 1
     WHERE slot_id = %s AND reserved_count < max_capacity

so the 0 <= reserved_count <= max_capacity invariant holds across
threads, processes and service instances sharing the database.

Lock waits are bounded: promo rows are locked NOWAIT, and the
connection timeout caps waits on slot rows. A lock that cannot be had
surfaces as SlotUnavailable(SLOT_LOCK_TIMEOUT) or
PromoRejected(PROMO_BUSY), never as a hang.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple

from django.db import IntegrityError, OperationalError, transaction
from django.db.models import F, Q

from core.commands.errors import (
    InvalidTransition,
    OrderNotFound,
    PromoRejected,
    SlotUnavailable,
    ValidationError,
)
from core.commands.rejection import ReasonCode
from core.fulfillment_store.models import (
    BlackoutDate as BlackoutDateRow,
    Order as OrderRow,
    OrderItem as OrderItemRow,
    Promo as PromoRow,
    PromoRedemption as PromoRedemptionRow,
    StoreHours as StoreHoursRow,
    Timeslot as TimeslotRow,
)
from core.primitives.money import to_money
from core.primitives.workflow import StateTransition
from core.time.clock import Clock, SystemClock
from engines.order.models import Order
from engines.pricing.commands import AddonLine, LineItem
from engines.promotion.commands import PromoRecord, PromoRedemption, normalize_code
from engines.promotion.policies import (
    promo_customer_limit_policy,
    promo_must_exist_policy,
    promo_usage_limit_policy,
)
from engines.timeslot.commands import BlackoutDate, StoreHours, Timeslot
from engines.timeslot.policies import (
    reservation_policy,
    slot_must_exist_policy,
    slot_must_have_capacity_policy,
    slot_must_not_be_blocked_policy,
)

logger = logging.getLogger("bakery.timeslots")
promo_logger = logging.getLogger("bakery.promotions")


@contextmanager
def _slot_lock_wait(slot_id: str) -> Iterator[None]:
    try:
        yield
    except OperationalError as exc:
        logger.warning(f"Slot {slot_id} row lock not acquired: {exc}")
        raise SlotUnavailable(
            "This timeslot is busy, please try again.",
            code=ReasonCode.SLOT_LOCK_TIMEOUT,
            policy_name="slot_lock_policy",
        ) from exc


# ══════════════════════════════════════════════════════════════
# CALENDAR
# ══════════════════════════════════════════════════════════════

class DbCalendar:
    def get_store_hours(self, weekday: int) -> Optional[StoreHours]:
        row = StoreHoursRow.objects.filter(weekday=weekday).first()
        if row is None:
            return None
        return StoreHours(
            weekday=row.weekday, open_time=row.open_time,
            close_time=row.close_time, is_closed=row.is_closed,
        )

    def set_store_hours(self, hours: StoreHours) -> StoreHours:
        StoreHoursRow.objects.update_or_create(
            weekday=hours.weekday,
            defaults={
                "open_time": hours.open_time,
                "close_time": hours.close_time,
                "is_closed": hours.is_closed,
            },
        )
        return hours

    def is_blackout(self, day: date) -> bool:
        return BlackoutDateRow.objects.filter(blackout_date=day).exists()

    def add_blackout(self, blackout: BlackoutDate) -> BlackoutDate:
        BlackoutDateRow.objects.update_or_create(
            blackout_date=blackout.blackout_date,
            defaults={"reason": blackout.reason},
        )
        return blackout

    def remove_blackout(self, day: date) -> bool:
        deleted, _ = BlackoutDateRow.objects.filter(blackout_date=day).delete()
        return deleted > 0

    def list_blackouts(self) -> List[BlackoutDate]:
        return [
            BlackoutDate(row.blackout_date, row.reason)
            for row in BlackoutDateRow.objects.order_by("blackout_date")
        ]


# ══════════════════════════════════════════════════════════════
# SLOT CAPACITY
# ══════════════════════════════════════════════════════════════

def _slot_from_row(row: TimeslotRow) -> Timeslot:
    return Timeslot(
        slot_id=row.slot_id,
        slot_date=row.slot_date,
        start_time=row.start_time,
        end_time=row.end_time,
        fulfillment_type=row.fulfillment_type,
        max_capacity=row.max_capacity,
        reserved_count=row.reserved_count,
        is_blocked=row.is_blocked,
    )


class DbSlotCapacityStore:
    def __init__(self, calendar):
        self._calendar = calendar

    def get(self, slot_id: str) -> Optional[Timeslot]:
        row = TimeslotRow.objects.filter(slot_id=slot_id).first()
        return _slot_from_row(row) if row is not None else None

    def _require(self, slot_id: str) -> Timeslot:
        slot = self.get(slot_id)
        rejection = slot_must_exist_policy(slot, slot_id)
        if rejection is not None:
            raise SlotUnavailable.from_reason(rejection)
        return slot

    def _increment(self, slot_id: str) -> None:
        """Conditional +1; on a lost race re-read to report why."""
        updated = TimeslotRow.objects.filter(
            slot_id=slot_id,
            is_blocked=False,
            reserved_count__lt=F("max_capacity"),
        ).update(reserved_count=F("reserved_count") + 1)
        if updated:
            return
        slot = self.get(slot_id)
        rejection = (
            slot_must_exist_policy(slot, slot_id)
            or slot_must_not_be_blocked_policy(slot)
            or slot_must_have_capacity_policy(slot)
        )
        if rejection is None:
            raise SlotUnavailable("This timeslot is busy, please try again.",
                                  code=ReasonCode.SLOT_LOCK_TIMEOUT)
        raise SlotUnavailable.from_reason(rejection)

    def _decrement(self, slot_id: str) -> int:
        return TimeslotRow.objects.filter(
            slot_id=slot_id, reserved_count__gt=0,
        ).update(reserved_count=F("reserved_count") - 1)

    def reserve(self, slot_id: str) -> Timeslot:
        slot = self.get(slot_id)
        rejection = reservation_policy(slot, slot_id, self._calendar)
        if rejection is not None:
            raise SlotUnavailable.from_reason(rejection)
        with _slot_lock_wait(slot_id):
            self._increment(slot_id)
        return self.get(slot_id)

    def release(self, slot_id: str) -> Optional[Timeslot]:
        with _slot_lock_wait(slot_id):
            decremented = self._decrement(slot_id)
        if not decremented and self.get(slot_id) is None:
            logger.warning(f"Release of unknown slot {slot_id} ignored")
            return None
        return self.get(slot_id)

    def move(self, order_id: str, from_slot_id: str, to_slot_id: str) -> Timeslot:
        if from_slot_id == to_slot_id:
            return self._require(to_slot_id)
        target = self.get(to_slot_id)
        rejection = reservation_policy(target, to_slot_id, self._calendar)
        if rejection is not None:
            raise SlotUnavailable.from_reason(rejection)
        self._require(from_slot_id)

        with _slot_lock_wait(to_slot_id), transaction.atomic():
            for slot_id in sorted((from_slot_id, to_slot_id)):
                if slot_id == to_slot_id:
                    self._increment(to_slot_id)
                else:
                    self._decrement(from_slot_id)
        logger.info(f"Order {order_id} moved from slot {from_slot_id} to {to_slot_id}")
        return self.get(to_slot_id)

    def list_available(
        self, start_date: date, end_date: date, fulfillment_type: Optional[str] = None,
    ) -> List[Timeslot]:
        qs = TimeslotRow.objects.filter(
            slot_date__gte=start_date,
            slot_date__lte=end_date,
            is_blocked=False,
            reserved_count__lt=F("max_capacity"),
        )
        if fulfillment_type is not None:
            qs = qs.filter(fulfillment_type=fulfillment_type)
        return [_slot_from_row(row) for row in qs.order_by("slot_date", "start_time", "fulfillment_type")]

    def upsert(self, slot: Timeslot) -> Tuple[Timeslot, bool]:
        """Insert if absent. An existing slot is returned untouched."""
        try:
            with transaction.atomic():
                row, created = TimeslotRow.objects.get_or_create(
                    slot_id=slot.slot_id,
                    defaults={
                        "slot_date": slot.slot_date,
                        "start_time": slot.start_time,
                        "end_time": slot.end_time,
                        "fulfillment_type": slot.fulfillment_type,
                        "max_capacity": slot.max_capacity,
                        "reserved_count": slot.reserved_count,
                        "is_blocked": slot.is_blocked,
                    },
                )
        except IntegrityError:
            row = TimeslotRow.objects.filter(slot_id=slot.slot_id).first()
            if row is None:
                raise
            created = False
        return _slot_from_row(row), created

    def set_capacity(self, slot_id: str, max_capacity: int) -> Timeslot:
        if isinstance(max_capacity, bool) or not isinstance(max_capacity, int) or max_capacity < 0:
            raise ValidationError("max_capacity must be a non-negative integer.")
        updated = TimeslotRow.objects.filter(
            slot_id=slot_id, reserved_count__lte=max_capacity,
        ).update(max_capacity=max_capacity)
        if not updated:
            slot = self._require(slot_id)
            raise ValidationError(
                f"Capacity {max_capacity} is below the {slot.reserved_count} "
                f"orders already booked.",
                code=ReasonCode.SLOT_IN_USE,
            )
        return self.get(slot_id)

    def set_blocked(self, slot_id: str, is_blocked: bool) -> Timeslot:
        if not TimeslotRow.objects.filter(slot_id=slot_id).update(is_blocked=is_blocked):
            self._require(slot_id)
        return self.get(slot_id)

    def delete(self, slot_id: str) -> None:
        deleted, _ = TimeslotRow.objects.filter(slot_id=slot_id, reserved_count=0).delete()
        if deleted:
            return
        slot = self._require(slot_id)
        raise SlotUnavailable(
            f"Cannot delete timeslot with {slot.reserved_count} existing "
            f"orders. Block it instead.",
            code=ReasonCode.SLOT_IN_USE,
        )


# ══════════════════════════════════════════════════════════════
# PROMOS
# ══════════════════════════════════════════════════════════════

def _promo_from_row(row: PromoRow) -> PromoRecord:
    return PromoRecord(
        code=row.code,
        promo_type=row.promo_type,
        value=row.value,
        min_order_amount=row.min_order_amount,
        max_uses=row.max_uses,
        max_uses_per_user=row.max_uses_per_user,
        used_count=row.used_count,
        starts_at=row.starts_at,
        expires_at=row.expires_at,
        is_active=row.is_active,
        description=row.description,
    )


def _redemption_from_row(row: PromoRedemptionRow) -> PromoRedemption:
    return PromoRedemption(
        code=row.code, order_id=row.order_id, customer_id=row.customer_id,
        amount=row.amount, redeemed_at=row.redeemed_at,
    )


class DbPromoRepository:
    def __init__(self, *, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    def add(self, promo: PromoRecord) -> PromoRecord:
        PromoRow.objects.update_or_create(
            code=promo.code,
            defaults={
                "promo_type": promo.promo_type,
                "value": promo.value,
                "min_order_amount": promo.min_order_amount,
                "max_uses": promo.max_uses,
                "max_uses_per_user": promo.max_uses_per_user,
                "used_count": promo.used_count,
                "starts_at": promo.starts_at,
                "expires_at": promo.expires_at,
                "is_active": promo.is_active,
                "description": promo.description,
            },
        )
        return promo

    def get_by_code(self, code: str) -> Optional[PromoRecord]:
        row = PromoRow.objects.filter(code=normalize_code(code)).first()
        return _promo_from_row(row) if row is not None else None

    def count_redemptions(self, code: str, customer_id: str) -> int:
        return PromoRedemptionRow.objects.filter(
            code=normalize_code(code), customer_id=customer_id,
        ).count()

    def redeem(
        self, code: str, order_id: str, customer_id: Optional[str], amount,
    ) -> PromoRedemption:
        code = normalize_code(code)
        try:
            with transaction.atomic():
                existing = PromoRedemptionRow.objects.filter(code=code, order_id=order_id).first()
                if existing is not None:
                    return _redemption_from_row(existing)

                row = PromoRow.objects.select_for_update(nowait=True).filter(code=code).first()
                promo = _promo_from_row(row) if row is not None else None
                rejection = promo_must_exist_policy(promo, code) or promo_usage_limit_policy(promo)
                if rejection is None and customer_id is not None:
                    rejection = promo_customer_limit_policy(
                        promo, customer_id, self.count_redemptions(code, customer_id),
                    )
                if rejection is not None:
                    raise PromoRejected.from_reason(rejection)

                updated = PromoRow.objects.filter(code=code).filter(
                    Q(max_uses__isnull=True) | Q(used_count__lt=F("max_uses")),
                ).update(used_count=F("used_count") + 1)
                if not updated:
                    raise PromoRejected(
                        f"Promo code '{code}' has reached its usage limit.",
                        code=ReasonCode.PROMO_EXHAUSTED,
                        policy_name="promo_usage_limit_policy",
                    )

                redemption = PromoRedemptionRow.objects.create(
                    code=code, order_id=order_id, customer_id=customer_id,
                    amount=to_money(amount), redeemed_at=self._clock.now_utc(),
                )
        except OperationalError as exc:
            promo_logger.warning(f"Promo {code} row lock not acquired: {exc}")
            raise PromoRejected(
                f"Promo code '{code}' is busy, please retry.", code=ReasonCode.PROMO_BUSY,
            ) from exc
        return _redemption_from_row(redemption)

    def release_redemption(self, code: str, order_id: str) -> bool:
        code = normalize_code(code)
        with transaction.atomic():
            deleted, _ = PromoRedemptionRow.objects.filter(code=code, order_id=order_id).delete()
            if not deleted:
                return False
            PromoRow.objects.filter(code=code, used_count__gt=0).update(
                used_count=F("used_count") - 1,
            )
        promo_logger.info(
            f"Promo {code} redemption released for order {order_id}"
        )
        return True


# ══════════════════════════════════════════════════════════════
# ORDERS
# ══════════════════════════════════════════════════════════════

_ORDER_COLUMNS = (
    "order_number", "status", "fulfillment_type", "payment_method", "source",
    "is_paid", "paid_at", "payment_reference", "subtotal", "discount_amount",
    "tax_amount", "delivery_fee", "tip_amount", "total_amount", "refunded_amount",
    "promo_code", "scheduled_date", "slot_id", "customer_id", "guest_email",
    "guest_first_name", "guest_last_name", "guest_phone", "delivery_address",
    "delivery_zip", "delivery_notes", "production_notes", "assigned_baker_id",
    "refund_reason", "cancel_reason", "created_at", "updated_at", "version",
)


def _order_columns(order: Order) -> dict:
    columns = {name: getattr(order, name) for name in _ORDER_COLUMNS}
    columns["packaging_checklist"] = dict(order.packaging_checklist)
    columns["history"] = [t.to_dict() for t in order.history]
    return columns


def _item_from_row(row: OrderItemRow) -> LineItem:
    return LineItem(
        product_id=row.product_id,
        quantity=row.quantity,
        unit_price=row.unit_price,
        variant_id=row.variant_id,
        addons=tuple(
            AddonLine(addon_id=a["addon_id"], price=Decimal(a["price"]), value=a.get("value"))
            for a in row.addons
        ),
        note=row.note,
    )


def _order_from_row(row: OrderRow) -> Order:
    columns = {name: getattr(row, name) for name in _ORDER_COLUMNS}
    return Order(
        order_id=row.order_id,
        items=tuple(_item_from_row(item) for item in row.items.order_by("position")),
        packaging_checklist=dict(row.packaging_checklist or {}),
        history=tuple(StateTransition.from_dict(t) for t in row.history or ()),
        **columns,
    )


class DbOrderRepository:
    def get(self, order_id: str) -> Optional[Order]:
        row = OrderRow.objects.filter(order_id=order_id).first()
        return _order_from_row(row) if row is not None else None

    def get_by_number(self, order_number: str) -> Optional[Order]:
        row = OrderRow.objects.filter(order_number=order_number).first()
        return _order_from_row(row) if row is not None else None

    def add(self, order: Order) -> Order:
        try:
            with transaction.atomic():
                row = OrderRow.objects.create(order_id=order.order_id, **_order_columns(order))
                OrderItemRow.objects.bulk_create([
                    OrderItemRow(
                        order=row,
                        position=position,
                        product_id=item.product_id,
                        variant_id=item.variant_id,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        addons=[a.to_dict() for a in item.addons],
                        note=item.note,
                        total_price=item.total_price,
                    )
                    for position, item in enumerate(order.items)
                ])
        except IntegrityError as exc:
            raise ValidationError(f"Order {order.order_number} already exists.") from exc
        return order

    def save(self, order: Order, *, expected_version: int) -> Order:
        columns = _order_columns(order)
        updated = OrderRow.objects.filter(
            order_id=order.order_id, version=expected_version,
        ).update(**columns)
        if not updated:
            if not OrderRow.objects.filter(order_id=order.order_id).exists():
                raise OrderNotFound(f"Order {order.order_id} not found.")
            raise InvalidTransition(
                f"Order {order.order_id} was modified concurrently, please reload.",
                code=ReasonCode.ORDER_MODIFIED_CONCURRENTLY,
            )
        return order

    def number_exists(self, order_number: str) -> bool:
        return OrderRow.objects.filter(order_number=order_number).exists()
