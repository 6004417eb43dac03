"""
Bakery Order Engine — Lifecycle Service
==========================================
create_order → advance_status / reschedule_order / refund_order /
cancel_order, plus kitchen-side production details.

Order creation touches four stores that share no transaction
(slot capacity, promo usage, payment gateway, orders). It runs as a
sequence of compensable steps:

    reserve slot → redeem promo → capture payment → persist order

A failing step unwinds the completed ones in reverse order, so a
rejected checkout leaves no reserved capacity, no consumed promo
use and no captured charge behind.

Every mutation of an existing order holds that order's lock, so two
staff members acting on the same order are serialized while work on
different orders proceeds in parallel.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Tuple

from core.commands.errors import (
    FulfillmentError,
    GatewayFailure,
    InvalidTransition,
    OrderNotFound,
    SlotUnavailable,
    ValidationError,
)
from core.commands.rejection import ReasonCode, RejectionReason
from core.config.rules import FulfillmentSettings, PricingRules
from core.numbering.provider import OrderNumberProvider, RandomOrderNumberProvider
from core.primitives.fulfillment import (
    GATEWAY_PAYMENT_METHODS,
    PAID_ON_ENTRY_METHODS,
    STATUS_CANCELLED,
    STATUS_NEW,
    STATUS_REFUNDED,
)
from core.primitives.locks import KeyedLockRegistry, LockTimeout
from core.primitives.money import ZERO, to_money
from core.primitives.workflow import ORDER_WORKFLOW, StateTransition
from core.time.clock import Clock, SystemClock
from engines.order.commands import CreateOrderRequest, ProductionDetailsUpdate
from engines.order.models import Order
from engines.order.policies import (
    order_must_be_schedulable_policy,
    order_must_not_be_refunded_policy,
    order_must_not_be_terminal_policy,
    refund_amount_policy,
    slot_must_match_order_policy,
    transition_must_be_allowed_policy,
)
from engines.pricing.services import compute, compute_subtotal, free_item_discount
from engines.promotion.services import PromoRepository, PromoValidator
from engines.timeslot.commands import Timeslot, parse_date
from engines.timeslot.policies import calendar_policy, slot_must_exist_policy
from engines.timeslot.services import CalendarProvider, SlotCapacityStore

logger = logging.getLogger("bakery.orders")


# ══════════════════════════════════════════════════════════════
# COLLABORATOR PROTOCOLS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GatewayResult:
    ok: bool
    reference: Optional[str] = None
    message: str = ""


class PaymentGateway(Protocol):
    def capture(self, amount: Decimal, *, reference: Optional[str] = None) -> GatewayResult: ...

    def refund(self, amount: Decimal, *, reference: Optional[str] = None) -> GatewayResult: ...


class NullPaymentGateway:
    """
    Approves every call. Stands in for the card processor when
    payment is confirmed outside this service (e.g. the storefront
    already confirmed the payment intent).
    """

    def capture(self, amount: Decimal, *, reference: Optional[str] = None) -> GatewayResult:
        return GatewayResult(ok=True, reference=reference or f"offline-{uuid.uuid4().hex[:12]}")

    def refund(self, amount: Decimal, *, reference: Optional[str] = None) -> GatewayResult:
        return GatewayResult(ok=True, reference=reference)


class StatusNotifier(Protocol):
    def dispatch_status_change(self, order: Order, status: str) -> Any: ...


class OrderRepository(Protocol):
    def get(self, order_id: str) -> Optional[Order]: ...

    def add(self, order: Order) -> Order: ...

    def save(self, order: Order, *, expected_version: int) -> Order: ...

    def number_exists(self, order_number: str) -> bool: ...


def _concurrent_modification(order_id: str) -> InvalidTransition:
    return InvalidTransition(
        f"Order {order_id} was modified concurrently, please reload.",
        code=ReasonCode.ORDER_MODIFIED_CONCURRENTLY,
    )


class InMemoryOrderRepository:
    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._numbers: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def get_by_number(self, order_number: str) -> Optional[Order]:
        order_id = self._numbers.get(order_number)
        return self._orders.get(order_id) if order_id else None

    def add(self, order: Order) -> Order:
        with self._lock:
            if order.order_id in self._orders or order.order_number in self._numbers:
                raise ValidationError(f"Order {order.order_number} already exists.")
            self._orders[order.order_id] = order
            self._numbers[order.order_number] = order.order_id
        return order

    def save(self, order: Order, *, expected_version: int) -> Order:
        with self._lock:
            current = self._orders.get(order.order_id)
            if current is None:
                raise OrderNotFound(f"Order {order.order_id} not found.")
            if current.version != expected_version:
                raise _concurrent_modification(order.order_id)
            self._orders[order.order_id] = order
        return order

    def number_exists(self, order_number: str) -> bool:
        return order_number in self._numbers

    def list_orders(self) -> List[Order]:
        with self._lock:
            return sorted(self._orders.values(), key=lambda o: o.created_at)


# ══════════════════════════════════════════════════════════════
# COMPENSATION
# ══════════════════════════════════════════════════════════════

class CompensationLog:
    """
    Undo actions for completed steps, run newest-first on failure.

    An undo that itself fails is logged and skipped; the remaining
    undos still run and the original error is what the caller sees.
    """

    def __init__(self, context: str):
        self._context = context
        self._undos: List[Tuple[str, Callable[[], Any]]] = []

    def add(self, description: str, undo: Callable[[], Any]) -> None:
        self._undos.append((description, undo))

    def unwind(self) -> List[str]:
        failed: List[str] = []
        while self._undos:
            description, undo = self._undos.pop()
            try:
                undo()
                logger.warning(f"{self._context}: compensated '{description}'")
            except Exception as exc:
                failed.append(description)
                logger.error(
                    f"{self._context}: compensation '{description}' failed: {exc}",
                    exc_info=True,
                )
        return failed


# ══════════════════════════════════════════════════════════════
# ORDER LIFECYCLE SERVICE
# ══════════════════════════════════════════════════════════════

class OrderLifecycleService:
    def __init__(
        self,
        *,
        orders: OrderRepository,
        slots: SlotCapacityStore,
        calendar: CalendarProvider,
        promos: PromoRepository,
        gateway: PaymentGateway | None = None,
        notifier: StatusNotifier | None = None,
        numbering: OrderNumberProvider | None = None,
        rules: PricingRules | None = None,
        settings: FulfillmentSettings | None = None,
        clock: Clock | None = None,
    ):
        self._orders = orders
        self._slots = slots
        self._calendar = calendar
        self._promos = promos
        self._gateway = gateway or NullPaymentGateway()
        self._notifier = notifier
        self._rules = rules or PricingRules()
        self._settings = settings or FulfillmentSettings()
        self._clock = clock or SystemClock()
        self._numbering = numbering or RandomOrderNumberProvider(
            prefix=self._settings.order_number_prefix,
            exists=orders.number_exists,
        )
        self._validator = PromoValidator(promos, clock=self._clock)
        self._locks = KeyedLockRegistry(timeout=self._settings.lock_timeout_seconds)

    # ── helpers ───────────────────────────────────────────────

    def _require(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    @contextmanager
    def _order_lock(self, order_id: str) -> Iterator[None]:
        try:
            with self._locks.hold(order_id):
                yield
        except LockTimeout as exc:
            raise _concurrent_modification(order_id) from exc

    def _notify(self, order: Order) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.dispatch_status_change(order, order.status)
        except Exception as exc:
            logger.error(
                f"Notification for {order.order_number} ({order.status}) not sent: {exc}",
                exc_info=True,
            )

    def _release_slot(self, order: Order) -> None:
        if not order.slot_id:
            return
        try:
            self._slots.release(order.slot_id)
        except FulfillmentError as exc:
            logger.error(
                f"Slot {order.slot_id} not released for {order.order_number}: {exc}",
                exc_info=True,
            )

    @staticmethod
    def _raise_if(rejection: Optional[RejectionReason], error_cls) -> None:
        if rejection is not None:
            raise error_cls.from_reason(rejection)

    def _check_calendar(self, scheduled_date: date) -> None:
        self._raise_if(calendar_policy(scheduled_date, self._calendar), SlotUnavailable)

    def _resolve_slot(
        self, slot_id: str, fulfillment_type: str, scheduled_date: Optional[date],
    ) -> Timeslot:
        slot = self._slots.get(slot_id)
        self._raise_if(slot_must_exist_policy(slot, slot_id), SlotUnavailable)
        self._raise_if(
            slot_must_match_order_policy(slot, fulfillment_type, scheduled_date),
            ValidationError,
        )
        return slot

    # ── create ────────────────────────────────────────────────

    def create_order(self, request: CreateOrderRequest) -> Order:
        now = self._clock.now_utc()

        subtotal = compute_subtotal(request.items)
        discount = ZERO
        promo_code = None
        if request.promo_code:
            promo = self._validator.validate(
                request.promo_code, subtotal, request.customer_id, now,
            )
            promo_code = promo.code
            discount = (
                min(free_item_discount(request.items), subtotal)
                if promo.is_free_item else promo.amount
            )

        breakdown = compute(
            request.items, request.fulfillment_type, discount,
            tip_amount=request.tip_amount, rules=self._rules,
        )

        scheduled_date = request.scheduled_date
        if request.slot_id:
            slot = self._resolve_slot(request.slot_id, request.fulfillment_type, scheduled_date)
            scheduled_date = slot.slot_date
        if scheduled_date is not None:
            self._check_calendar(scheduled_date)

        order_id = str(uuid.uuid4())
        order_number = self._numbering.next_number(source=request.source, issued_at=now)
        log = CompensationLog(f"create {order_number}")

        try:
            if request.slot_id:
                self._slots.reserve(request.slot_id)
                log.add(f"reserve slot {request.slot_id}",
                        lambda: self._slots.release(request.slot_id))

            if promo_code:
                self._promos.redeem(promo_code, order_id, request.customer_id, discount)
                log.add(f"redeem promo {promo_code}",
                        lambda: self._promos.release_redemption(promo_code, order_id))

            is_paid = request.payment_method in PAID_ON_ENTRY_METHODS
            payment_reference = request.payment_reference
            total = breakdown.total_amount
            if request.payment_method in GATEWAY_PAYMENT_METHODS:
                if total > 0:
                    result = self._gateway.capture(total, reference=payment_reference)
                    if not result.ok:
                        raise GatewayFailure(
                            result.message or "Payment was declined.",
                            code=ReasonCode.PAYMENT_CAPTURE_FAILED,
                        )
                    payment_reference = result.reference
                    log.add(f"capture {total}",
                            lambda: self._refund_or_raise(total, result.reference))
                is_paid = True

            order = Order(
                order_id=order_id,
                order_number=order_number,
                status=STATUS_NEW,
                fulfillment_type=request.fulfillment_type,
                payment_method=request.payment_method,
                source=request.source,
                items=request.items,
                subtotal=breakdown.subtotal,
                discount_amount=breakdown.discount_amount,
                tax_amount=breakdown.tax_amount,
                delivery_fee=breakdown.delivery_fee,
                tip_amount=breakdown.tip_amount,
                total_amount=breakdown.total_amount,
                created_at=now,
                updated_at=now,
                is_paid=is_paid,
                paid_at=now if is_paid else None,
                payment_reference=payment_reference,
                promo_code=promo_code,
                scheduled_date=scheduled_date,
                slot_id=request.slot_id,
                customer_id=request.customer_id,
                guest_email=request.guest_email,
                guest_first_name=request.guest_first_name,
                guest_last_name=request.guest_last_name,
                guest_phone=request.guest_phone,
                delivery_address=request.delivery_address,
                delivery_zip=request.delivery_zip,
                delivery_notes=request.delivery_notes,
                production_notes=request.production_notes,
                history=(StateTransition(
                    from_state=STATUS_NEW, to_state=STATUS_NEW,
                    actor_id=request.actor_id, transitioned_at=now, reason="created",
                ),),
            )
            self._orders.add(order)
        except Exception:
            failed = log.unwind()
            if failed:
                logger.critical(
                    f"Order {order_number} left partial state; manual review needed: {failed}"
                )
            raise

        logger.info(
            f"Order {order_number} created via {request.source}: "
            f"{order.fulfillment_type} total {order.total_amount}"
        )
        self._notify(order)
        return order

    def _refund_or_raise(self, amount: Decimal, reference: Optional[str]) -> None:
        result = self._gateway.refund(amount, reference=reference)
        if not result.ok:
            raise GatewayFailure(
                result.message or "Refund failed.", code=ReasonCode.PAYMENT_REFUND_FAILED,
            )

    # ── status ────────────────────────────────────────────────

    def advance_status(self, order_id: str, *, actor_id: str = "system") -> Order:
        with self._order_lock(order_id):
            order = self._require(order_id)
            self._raise_if(order_must_not_be_terminal_policy(order), InvalidTransition)
            next_state = ORDER_WORKFLOW.next_forward_state(order.status)
            updated = order.transitioned(
                next_state, actor_id=actor_id, at=self._clock.now_utc(),
            )
            self._orders.save(updated, expected_version=order.version)

        logger.info(f"Order {order.order_number}: {order.status} → {next_state}")
        self._notify(updated)
        return updated

    # ── reschedule ────────────────────────────────────────────

    def reschedule_order(
        self,
        order_id: str,
        new_date,
        new_slot_id: Optional[str] = None,
        *,
        actor_id: str = "system",
    ) -> Order:
        new_date = parse_date(new_date, "new_date")
        with self._order_lock(order_id):
            order = self._require(order_id)
            self._raise_if(order_must_not_be_terminal_policy(order), InvalidTransition)
            self._raise_if(order_must_be_schedulable_policy(order), InvalidTransition)
            self._check_calendar(new_date)

            log = CompensationLog(f"reschedule {order.order_number}")
            release_after_save = None
            try:
                if new_slot_id:
                    self._resolve_slot(new_slot_id, order.fulfillment_type, new_date)
                    if order.slot_id and order.slot_id != new_slot_id:
                        self._slots.move(order.order_id, order.slot_id, new_slot_id)
                        old_slot = order.slot_id
                        log.add(f"move to {new_slot_id}",
                                lambda: self._slots.move(order.order_id, new_slot_id, old_slot))
                    elif not order.slot_id:
                        self._slots.reserve(new_slot_id)
                        log.add(f"reserve slot {new_slot_id}",
                                lambda: self._slots.release(new_slot_id))
                elif order.slot_id:
                    release_after_save = order
                updated = order.updated(
                    self._clock.now_utc(), scheduled_date=new_date, slot_id=new_slot_id,
                )
                self._orders.save(updated, expected_version=order.version)
            except Exception:
                log.unwind()
                raise

            if release_after_save is not None:
                self._release_slot(release_after_save)

        logger.info(
            f"Order {order.order_number} rescheduled to {new_date}"
            + (f" slot {new_slot_id}" if new_slot_id else " (unscheduled slot)")
        )
        return updated

    # ── refund / cancel ───────────────────────────────────────

    def refund_order(
        self,
        order_id: str,
        amount=None,
        reason: str = "",
        *,
        actor_id: str = "system",
    ) -> Order:
        with self._order_lock(order_id):
            order = self._require(order_id)
            self._raise_if(order_must_not_be_refunded_policy(order), InvalidTransition)
            self._raise_if(
                transition_must_be_allowed_policy(order, STATUS_REFUNDED), InvalidTransition,
            )

            if amount is None:
                refund = order.refundable_amount
            else:
                try:
                    refund = to_money(amount, field_name="amount")
                except ValueError as exc:
                    raise ValidationError(str(exc), code=ReasonCode.INVALID_REFUND_AMOUNT) from exc
            self._raise_if(refund_amount_policy(order, refund), ValidationError)

            if refund > 0:
                result = self._gateway.refund(refund, reference=order.payment_reference)
                if not result.ok:
                    logger.warning(
                        f"Refund of {refund} for {order.order_number} declined: {result.message}"
                    )
                    raise GatewayFailure(
                        result.message or "Refund failed.",
                        code=ReasonCode.PAYMENT_REFUND_FAILED,
                    )

            updated = order.transitioned(
                STATUS_REFUNDED, actor_id=actor_id, at=self._clock.now_utc(),
                reason=reason, refunded_amount=refund, refund_reason=reason or None,
            )
            try:
                self._orders.save(updated, expected_version=order.version)
            except Exception:
                logger.critical(
                    f"Refund of {refund} issued for {order.order_number} "
                    f"but the order could not be saved",
                    exc_info=True,
                )
                raise

            # Cancelled orders already gave their slot back.
            if order.status != STATUS_CANCELLED:
                self._release_slot(order)

        logger.info(f"Order {order.order_number} refunded {refund}")
        self._notify(updated)
        return updated

    def cancel_order(self, order_id: str, reason: str = "", *, actor_id: str = "system") -> Order:
        with self._order_lock(order_id):
            order = self._require(order_id)
            self._raise_if(order_must_not_be_terminal_policy(order), InvalidTransition)
            self._raise_if(
                transition_must_be_allowed_policy(order, STATUS_CANCELLED), InvalidTransition,
            )
            updated = order.transitioned(
                STATUS_CANCELLED, actor_id=actor_id, at=self._clock.now_utc(),
                reason=reason, cancel_reason=reason or None,
            )
            self._orders.save(updated, expected_version=order.version)
            self._release_slot(order)

        logger.info(f"Order {order.order_number} cancelled")
        self._notify(updated)
        return updated

    # ── production details / reads ────────────────────────────

    def update_production_details(
        self, order_id: str, update: ProductionDetailsUpdate,
    ) -> Order:
        with self._order_lock(order_id):
            order = self._require(order_id)
            if update.is_empty:
                return order
            changes = {}
            if update.production_notes is not None:
                changes["production_notes"] = update.production_notes
            if update.assigned_baker_id is not None:
                changes["assigned_baker_id"] = update.assigned_baker_id or None
            if update.packaging_checklist is not None:
                changes["packaging_checklist"] = dict(update.packaging_checklist)
            updated = order.updated(self._clock.now_utc(), **changes)
            self._orders.save(updated, expected_version=order.version)
        return updated

    def get_order(self, order_id: str) -> Order:
        return self._require(order_id)
