"""
Bakery Order Engine — Request Commands
=========================================
Inbound requests from the storefront, phone entry and POS.
Every request validates itself at construction: a request object
that exists is a request the lifecycle may act on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple

from core.commands.errors import ValidationError
from core.commands.rejection import ReasonCode
from core.primitives.fulfillment import (
    DELIVERY,
    PAYMENT_STRIPE_CARD,
    SOURCE_POS,
    SOURCE_WEB,
    VALID_FULFILLMENT_TYPES,
    VALID_PAYMENT_METHODS,
    VALID_SOURCES,
    WALKIN,
)
from core.primitives.money import ZERO, to_money
from engines.pricing.commands import LineItem
from engines.timeslot.commands import parse_date

MAX_NOTE_LENGTH = 500
MAX_PRODUCTION_NOTES_LENGTH = 1000
MAX_PROMO_CODE_LENGTH = 50


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _max_length(value: Optional[str], limit: int, field_name: str) -> None:
    if value is not None and len(value) > limit:
        raise ValidationError(f"{field_name} must be at most {limit} characters.")


@dataclass(frozen=True)
class CreateOrderRequest:
    items: Tuple[LineItem, ...]
    fulfillment_type: str
    payment_method: str = PAYMENT_STRIPE_CARD
    source: str = SOURCE_WEB
    customer_id: Optional[str] = None
    guest_email: Optional[str] = None
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    guest_phone: Optional[str] = None
    scheduled_date: Optional[date] = None
    slot_id: Optional[str] = None
    promo_code: Optional[str] = None
    tip_amount: Decimal = ZERO
    delivery_address: Optional[str] = None
    delivery_zip: Optional[str] = None
    delivery_notes: Optional[str] = None
    production_notes: str = ""
    payment_reference: Optional[str] = None
    actor_id: str = "system"

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        if not self.items:
            raise ValidationError("Order must contain at least one item.", code=ReasonCode.EMPTY_CART)
        for item in self.items:
            if not isinstance(item, LineItem):
                raise ValidationError("items must be LineItem instances.")
            _max_length(item.note, MAX_NOTE_LENGTH, "item note")

        if self.fulfillment_type not in VALID_FULFILLMENT_TYPES:
            raise ValidationError(f"fulfillment_type '{self.fulfillment_type}' not valid.")
        if self.payment_method not in VALID_PAYMENT_METHODS:
            raise ValidationError(f"payment_method '{self.payment_method}' not valid.")
        if self.source not in VALID_SOURCES:
            raise ValidationError(f"source '{self.source}' not valid.")

        guest_fields = (
            self.guest_email, self.guest_first_name,
            self.guest_last_name, self.guest_phone,
        )
        has_guest = any(not _blank(v) for v in guest_fields)
        if self.customer_id and has_guest:
            raise ValidationError(
                "Provide either customer_id or guest contact details, not both."
            )
        if not self.customer_id and self.source != SOURCE_POS:
            if _blank(self.guest_email) and _blank(self.guest_phone):
                raise ValidationError(
                    "Guest orders require guest_email or guest_phone."
                )
        if not _blank(self.guest_email) and "@" not in self.guest_email:
            raise ValidationError(f"guest_email '{self.guest_email}' is not valid.")

        if self.fulfillment_type == DELIVERY and _blank(self.delivery_address):
            raise ValidationError("delivery_address is required for DELIVERY orders.")
        if self.fulfillment_type == WALKIN and (self.slot_id or self.scheduled_date):
            raise ValidationError(
                "WALKIN orders cannot carry a timeslot or scheduled date.",
                code=ReasonCode.ORDER_NOT_SCHEDULABLE,
            )

        if self.scheduled_date is not None:
            object.__setattr__(
                self, "scheduled_date", parse_date(self.scheduled_date, "scheduled_date"),
            )

        try:
            tip = to_money(self.tip_amount, field_name="tip_amount")
        except ValueError as exc:
            raise ValidationError(str(exc), code=ReasonCode.INVALID_PRICE) from exc
        if tip < 0:
            raise ValidationError("tip_amount must be non-negative.", code=ReasonCode.INVALID_PRICE)
        object.__setattr__(self, "tip_amount", tip)

        if _blank(self.promo_code):
            object.__setattr__(self, "promo_code", None)
        else:
            _max_length(self.promo_code, MAX_PROMO_CODE_LENGTH, "promo_code")

        _max_length(self.delivery_address, MAX_NOTE_LENGTH, "delivery_address")
        _max_length(self.delivery_notes, MAX_NOTE_LENGTH, "delivery_notes")
        _max_length(self.production_notes, MAX_PRODUCTION_NOTES_LENGTH, "production_notes")
        if not self.actor_id:
            raise ValidationError("actor_id must be non-empty.")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CreateOrderRequest":
        """Build from a decoded JSON body. Unknown keys are ignored."""
        raw_items = data.get("items")
        if not isinstance(raw_items, list):
            raise ValidationError("items must be a list.", code=ReasonCode.EMPTY_CART)
        items = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                raise ValidationError("each item must be an object.")
            items.append(LineItem.from_dict(raw))

        kwargs = {
            key: data[key]
            for key in (
                "payment_method", "source", "customer_id", "guest_email",
                "guest_first_name", "guest_last_name", "guest_phone",
                "scheduled_date", "slot_id", "promo_code", "tip_amount",
                "delivery_address", "delivery_zip", "delivery_notes",
                "production_notes", "payment_reference", "actor_id",
            )
            if data.get(key) is not None
        }
        return cls(
            items=tuple(items),
            fulfillment_type=data.get("fulfillment_type", ""),
            **kwargs,
        )


@dataclass(frozen=True)
class ProductionDetailsUpdate:
    """Kitchen-side fields staff may edit in any status."""

    production_notes: Optional[str] = None
    assigned_baker_id: Optional[str] = None
    packaging_checklist: Optional[Mapping[str, bool]] = field(default=None)

    def __post_init__(self):
        _max_length(self.production_notes, MAX_PRODUCTION_NOTES_LENGTH, "production_notes")
        if self.packaging_checklist is not None:
            if not isinstance(self.packaging_checklist, Mapping):
                raise ValidationError("packaging_checklist must be an object.")
            for task, done in self.packaging_checklist.items():
                if not isinstance(task, str) or not task:
                    raise ValidationError("packaging_checklist keys must be task names.")
                if not isinstance(done, bool):
                    raise ValidationError(f"packaging_checklist['{task}'] must be true/false.")
            object.__setattr__(self, "packaging_checklist", dict(self.packaging_checklist))

    @property
    def is_empty(self) -> bool:
        return (
            self.production_notes is None
            and self.assigned_baker_id is None
            and self.packaging_checklist is None
        )
