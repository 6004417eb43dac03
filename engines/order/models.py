"""
Bakery Order Engine — Order Record
=====================================
The Order is an immutable value. Every change produces a new Order
with `version` bumped by one; repositories use the version for
optimistic concurrency. Orders are never deleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple

from core.primitives.fulfillment import VALID_ORDER_STATUSES
from core.primitives.money import ZERO, money_str, round_money
from core.primitives.workflow import StateTransition
from engines.pricing.commands import LineItem


@dataclass(frozen=True)
class Order:
    order_id: str
    order_number: str
    status: str
    fulfillment_type: str
    payment_method: str
    source: str
    items: Tuple[LineItem, ...]
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    delivery_fee: Decimal
    tip_amount: Decimal
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    refunded_amount: Decimal = ZERO
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    payment_reference: Optional[str] = None
    promo_code: Optional[str] = None
    scheduled_date: Optional[date] = None
    slot_id: Optional[str] = None
    customer_id: Optional[str] = None
    guest_email: Optional[str] = None
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    guest_phone: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_zip: Optional[str] = None
    delivery_notes: Optional[str] = None
    production_notes: str = ""
    packaging_checklist: Dict[str, bool] = field(default_factory=dict)
    assigned_baker_id: Optional[str] = None
    refund_reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    version: int = 1
    history: Tuple[StateTransition, ...] = ()

    def __post_init__(self):
        if self.status not in VALID_ORDER_STATUSES:
            raise ValueError(f"status '{self.status}' not valid.")
        if self.discount_amount > self.subtotal:
            raise ValueError("discount_amount must not exceed subtotal.")
        expected = round_money(
            self.subtotal - self.discount_amount + self.tax_amount
            + self.delivery_fee + self.tip_amount
        )
        if self.total_amount != expected:
            raise ValueError(
                f"total_amount {self.total_amount} does not match components ({expected})."
            )
        if self.refunded_amount < 0 or self.refunded_amount > self.total_amount:
            raise ValueError("refunded_amount must be within [0, total_amount].")

    @property
    def refundable_amount(self) -> Decimal:
        return self.total_amount if self.is_paid else ZERO

    def transitioned(
        self, to_state: str, *, actor_id: str, at: datetime, reason: str = "", **changes,
    ) -> "Order":
        record = StateTransition(
            from_state=self.status, to_state=to_state,
            actor_id=actor_id, transitioned_at=at, reason=reason,
        )
        return self.updated(at, status=to_state, history=self.history + (record,), **changes)

    def updated(self, at: datetime, **changes) -> "Order":
        return replace(self, updated_at=at, version=self.version + 1, **changes)

    def to_snapshot(self) -> dict:
        """Read-only view handed to pack-slip / receipt renderers and the API."""
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "status": self.status,
            "fulfillment_type": self.fulfillment_type,
            "payment_method": self.payment_method,
            "source": self.source,
            "is_paid": self.is_paid,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "items": [item.to_dict() for item in self.items],
            "subtotal": money_str(self.subtotal),
            "discount_amount": money_str(self.discount_amount),
            "tax_amount": money_str(self.tax_amount),
            "delivery_fee": money_str(self.delivery_fee),
            "tip_amount": money_str(self.tip_amount),
            "total_amount": money_str(self.total_amount),
            "refunded_amount": money_str(self.refunded_amount),
            "promo_code": self.promo_code,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "slot_id": self.slot_id,
            "customer": {
                "customer_id": self.customer_id,
                "email": self.guest_email,
                "first_name": self.guest_first_name,
                "last_name": self.guest_last_name,
                "phone": self.guest_phone,
            },
            "delivery": {
                "address": self.delivery_address,
                "zip": self.delivery_zip,
                "notes": self.delivery_notes,
            },
            "production_notes": self.production_notes,
            "packaging_checklist": dict(self.packaging_checklist),
            "assigned_baker_id": self.assigned_baker_id,
            "refund_reason": self.refund_reason,
            "cancel_reason": self.cancel_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
            "history": [t.to_dict() for t in self.history],
        }
