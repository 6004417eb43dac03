"""
Bakery Pricing Engine — Line Inputs
======================================
Price snapshots of the cart lines handed to the pricing engine.
Prices are captured at order time; they are never re-read from
the live catalog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple

from core.commands.errors import ValidationError
from core.commands.rejection import ReasonCode
from core.primitives.money import to_money


def _price(value, field_name: str) -> Decimal:
    try:
        amount = to_money(value, field_name=field_name)
    except ValueError as exc:
        raise ValidationError(str(exc), code=ReasonCode.INVALID_PRICE) from exc
    if amount < 0:
        raise ValidationError(
            f"{field_name} must be non-negative, got {amount}.",
            code=ReasonCode.INVALID_PRICE,
        )
    return amount


@dataclass(frozen=True)
class AddonLine:
    """One add-on on a cart line. Charged once per unit of the line."""

    addon_id: str
    price: Decimal
    value: Optional[str] = None

    def __post_init__(self):
        if not self.addon_id:
            raise ValidationError("addon_id must be non-empty.")
        object.__setattr__(self, "price", _price(self.price, "addon price"))

    def to_dict(self) -> dict:
        return {"addon_id": self.addon_id, "price": str(self.price), "value": self.value}


@dataclass(frozen=True)
class LineItem:
    product_id: str
    quantity: int
    unit_price: Decimal
    variant_id: Optional[str] = None
    addons: Tuple[AddonLine, ...] = field(default_factory=tuple)
    note: Optional[str] = None

    def __post_init__(self):
        if not self.product_id:
            raise ValidationError("product_id must be non-empty.")
        if (
            isinstance(self.quantity, bool)
            or not isinstance(self.quantity, int)
            or self.quantity <= 0
        ):
            raise ValidationError(
                f"quantity must be a positive integer, got {self.quantity!r}.",
                code=ReasonCode.INVALID_QUANTITY,
            )
        object.__setattr__(self, "unit_price", _price(self.unit_price, "unit_price"))
        object.__setattr__(self, "addons", tuple(self.addons))

    @property
    def unit_total(self) -> Decimal:
        """Price of one unit including its add-ons."""
        return self.unit_price + sum((a.price for a in self.addons), Decimal("0"))

    @property
    def total_price(self) -> Decimal:
        return to_money(self.unit_total * self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "addons": [a.to_dict() for a in self.addons],
            "note": self.note,
            "total_price": str(self.total_price),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            product_id=data.get("product_id", ""),
            quantity=data.get("quantity"),
            unit_price=data.get("unit_price"),
            variant_id=data.get("variant_id"),
            addons=tuple(
                AddonLine(
                    addon_id=a.get("addon_id", ""),
                    price=a.get("price"),
                    value=a.get("value"),
                )
                for a in data.get("addons") or ()
            ),
            note=data.get("note"),
        )
