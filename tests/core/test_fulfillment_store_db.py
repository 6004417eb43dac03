from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from django.db import OperationalError

from core.commands.errors import InvalidTransition, PromoRejected, SlotUnavailable, ValidationError
from core.commands.rejection import ReasonCode
from core.fulfillment_store.models import Promo as PromoRow
from core.fulfillment_store.stores import (
    DbCalendar,
    DbOrderRepository,
    DbPromoRepository,
    DbSlotCapacityStore,
)
from core.time.clock import FixedClock
from core.time.temporal import DayWindow
from engines.order.commands import CreateOrderRequest, ProductionDetailsUpdate
from engines.order.services import OrderLifecycleService
from engines.pricing.commands import AddonLine, LineItem
from engines.promotion.commands import PROMO_FIXED_AMOUNT, PromoRecord
from engines.timeslot.commands import BlackoutDate, GenerateSlotsRequest, StoreHours, Timeslot
from engines.timeslot.services import TimeslotService

pytestmark = pytest.mark.django_db(transaction=True)


NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
DAY = date(2026, 10, 21)
NEXT_DAY = date(2026, 10, 22)
MORNING = DayWindow.parse("09:00", "11:00")


def _slot(store, capacity=1, day=DAY, fulfillment_type="PICKUP"):
    slot, _ = store.upsert(Timeslot.create(day, MORNING, fulfillment_type, capacity))
    return slot


def _lifecycle():
    clock = FixedClock(NOW)
    calendar = DbCalendar()
    slots = DbSlotCapacityStore(calendar)
    return OrderLifecycleService(
        orders=DbOrderRepository(),
        slots=slots,
        calendar=calendar,
        promos=DbPromoRepository(clock=clock),
        clock=clock,
    ), slots


class TestDbCalendar:
    def test_store_hours_round_trip(self):
        calendar = DbCalendar()
        calendar.set_store_hours(StoreHours(2, "07:00", "15:00"))
        calendar.set_store_hours(StoreHours(2, "08:00", "16:00"))
        hours = calendar.get_store_hours(2)
        assert hours.open_time.hour == 8
        assert calendar.get_store_hours(3) is None

    def test_blackouts(self):
        calendar = DbCalendar()
        calendar.add_blackout(BlackoutDate(DAY, "Inventory"))
        assert calendar.is_blackout(DAY)
        assert [b.reason for b in calendar.list_blackouts()] == ["Inventory"]
        assert calendar.remove_blackout(DAY) is True
        assert calendar.remove_blackout(DAY) is False


class TestDbSlotCapacityStore:
    def test_reserve_until_full(self):
        store = DbSlotCapacityStore(DbCalendar())
        slot = _slot(store, capacity=1)
        assert store.reserve(slot.slot_id).reserved_count == 1
        with pytest.raises(SlotUnavailable) as exc_info:
            store.reserve(slot.slot_id)
        assert exc_info.value.code == ReasonCode.SLOT_FULL
        assert store.get(slot.slot_id).reserved_count == 1

    def test_release_floors_at_zero(self):
        store = DbSlotCapacityStore(DbCalendar())
        slot = _slot(store, capacity=2)
        assert store.release(slot.slot_id).reserved_count == 0
        assert store.release("missing") is None

    def test_move_is_all_or_nothing(self):
        store = DbSlotCapacityStore(DbCalendar())
        source = _slot(store, capacity=2)
        full = _slot(store, capacity=1, day=NEXT_DAY)
        store.reserve(source.slot_id)
        store.reserve(full.slot_id)

        with pytest.raises(SlotUnavailable):
            store.move("order-1", source.slot_id, full.slot_id)

        assert store.get(source.slot_id).reserved_count == 1
        assert store.get(full.slot_id).reserved_count == 1

    def test_move(self):
        store = DbSlotCapacityStore(DbCalendar())
        source = _slot(store, capacity=2)
        target = _slot(store, capacity=2, day=NEXT_DAY)
        store.reserve(source.slot_id)
        assert store.move("order-1", source.slot_id, target.slot_id).reserved_count == 1
        assert store.get(source.slot_id).reserved_count == 0

    def test_generation_is_insert_if_absent(self):
        calendar = DbCalendar()
        service = TimeslotService(store=DbSlotCapacityStore(calendar), calendar=calendar)
        request = GenerateSlotsRequest(DAY, NEXT_DAY, "DELIVERY", (MORNING,), capacity=4)
        assert service.generate_slots(request).created_count == 2
        again = service.generate_slots(request)
        assert again.created_count == 0
        assert len(again.existing) == 2
        assert len(service.list_available(DAY, NEXT_DAY, "DELIVERY")) == 2

    def test_capacity_and_delete_guards(self):
        store = DbSlotCapacityStore(DbCalendar())
        slot = _slot(store, capacity=3)
        store.reserve(slot.slot_id)
        store.reserve(slot.slot_id)
        with pytest.raises(ValidationError):
            store.set_capacity(slot.slot_id, 1)
        with pytest.raises(SlotUnavailable) as exc_info:
            store.delete(slot.slot_id)
        assert exc_info.value.code == ReasonCode.SLOT_IN_USE

    def test_blocked_slot_is_not_reservable(self):
        store = DbSlotCapacityStore(DbCalendar())
        slot = _slot(store, capacity=3)
        store.set_blocked(slot.slot_id, True)
        with pytest.raises(SlotUnavailable) as exc_info:
            store.reserve(slot.slot_id)
        assert exc_info.value.code == ReasonCode.SLOT_BLOCKED

    def test_row_lock_wait_surfaces_as_busy_slot(self, monkeypatch):
        store = DbSlotCapacityStore(DbCalendar())
        slot = _slot(store, capacity=3)

        def locked(slot_id):
            raise OperationalError("database is locked")

        monkeypatch.setattr(store, "_increment", locked)
        with pytest.raises(SlotUnavailable) as exc_info:
            store.reserve(slot.slot_id)
        assert exc_info.value.code == ReasonCode.SLOT_LOCK_TIMEOUT
        assert store.get(slot.slot_id).reserved_count == 0


class TestDbPromoRepository:
    def test_redeem_and_release(self):
        repo = DbPromoRepository(clock=FixedClock(NOW))
        repo.add(PromoRecord(
            code="DESERT10", promo_type=PROMO_FIXED_AMOUNT,
            value=Decimal("10"), max_uses=1,
        ))
        redemption = repo.redeem("desert10", "order-1", "cust-1", Decimal("10"))
        assert redemption.amount == Decimal("10.00")
        # Same order again is a no-op
        repo.redeem("DESERT10", "order-1", "cust-1", Decimal("10"))
        assert repo.get_by_code("DESERT10").used_count == 1

        with pytest.raises(PromoRejected) as exc_info:
            repo.redeem("DESERT10", "order-2", None, Decimal("10"))
        assert exc_info.value.code == ReasonCode.PROMO_EXHAUSTED

        assert repo.release_redemption("DESERT10", "order-1") is True
        assert repo.get_by_code("DESERT10").used_count == 0
        assert repo.count_redemptions("DESERT10", "cust-1") == 0

    def test_locked_promo_row_is_reported_busy(self, monkeypatch):
        repo = DbPromoRepository(clock=FixedClock(NOW))
        repo.add(PromoRecord(code="FIVE", promo_type=PROMO_FIXED_AMOUNT, value=Decimal("5")))

        def locked(**kwargs):
            assert kwargs == {"nowait": True}
            raise OperationalError("could not obtain lock on row")

        monkeypatch.setattr(PromoRow.objects, "select_for_update", locked)
        with pytest.raises(PromoRejected) as exc_info:
            repo.redeem("FIVE", "order-1", None, Decimal("5"))
        assert exc_info.value.code == ReasonCode.PROMO_BUSY
        monkeypatch.undo()
        assert repo.get_by_code("FIVE").used_count == 0


class TestDbOrderLifecycle:
    def test_order_persists_and_reloads(self):
        service, slots = _lifecycle()
        slot = _slot(slots, capacity=2)
        order = service.create_order(CreateOrderRequest(
            items=(
                LineItem("cake", 1, Decimal("30.00"), addons=(AddonLine("candles", Decimal("1.50")),)),
                LineItem("cookie", 6, Decimal("2.00"), note="no nuts"),
            ),
            fulfillment_type="PICKUP",
            guest_email="ana@example.com",
            slot_id=slot.slot_id,
        ))

        loaded = service.get_order(order.order_id)
        assert loaded == order
        assert loaded.items[0].addons[0].addon_id == "candles"
        assert slots.get(slot.slot_id).reserved_count == 1

    def test_lifecycle_round_trip(self):
        service, slots = _lifecycle()
        slot = _slot(slots, capacity=2)
        order = service.create_order(CreateOrderRequest(
            items=(LineItem("bread", 2, Decimal("6.00")),),
            fulfillment_type="PICKUP",
            customer_id="cust-1",
            slot_id=slot.slot_id,
        ))
        service.advance_status(order.order_id, actor_id="staff-1")
        service.update_production_details(
            order.order_id, ProductionDetailsUpdate(packaging_checklist={"bagged": True}),
        )
        cancelled = service.cancel_order(order.order_id, "Customer called")

        reloaded = service.get_order(order.order_id)
        assert reloaded.status == "CANCELLED"
        assert reloaded.version == cancelled.version
        assert [t.to_state for t in reloaded.history] == ["NEW", "CONFIRMED", "CANCELLED"]
        assert reloaded.packaging_checklist == {"bagged": True}
        assert slots.get(slot.slot_id).reserved_count == 0

    def test_stale_save_is_rejected(self):
        service, slots = _lifecycle()
        order = service.create_order(CreateOrderRequest(
            items=(LineItem("bread", 1, Decimal("6.00")),),
            fulfillment_type="WALKIN", source="pos", payment_method="CASH",
        ))
        service.advance_status(order.order_id)
        stale = order.updated(NOW, production_notes="late edit")
        with pytest.raises(InvalidTransition) as exc_info:
            DbOrderRepository().save(stale, expected_version=order.version)
        assert exc_info.value.code == ReasonCode.ORDER_MODIFIED_CONCURRENTLY
