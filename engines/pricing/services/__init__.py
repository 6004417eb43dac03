"""
Bakery Pricing Engine — Order Totals
======================================
subtotal → discount → tax → delivery fee → tip → total

    subtotal      = Σ(unit_price × qty) + Σ(addon_price × qty)
    delivery_fee  = rules.delivery_fee for DELIVERY, else 0
    taxable       = subtotal − discount
    tax           = round_half_up(taxable × tax_rate, 2)
    total         = round_half_up(taxable + tax + delivery_fee + tip, 2)

Pure: no I/O, no clock, no mutation. Identical inputs produce
identical breakdowns on every channel.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence, Tuple

from core.commands.errors import InvalidDiscount, ValidationError
from core.commands.rejection import ReasonCode
from core.config.rules import PricingRules
from core.primitives.fulfillment import DELIVERY, VALID_FULFILLMENT_TYPES
from core.primitives.money import ZERO, money_str, round_money, to_money
from engines.pricing.commands import LineItem


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    delivery_fee: Decimal
    tip_amount: Decimal
    total_amount: Decimal
    line_totals: Tuple[Decimal, ...] = ()

    def to_dict(self) -> dict:
        return {
            "subtotal": money_str(self.subtotal),
            "discount_amount": money_str(self.discount_amount),
            "tax_amount": money_str(self.tax_amount),
            "delivery_fee": money_str(self.delivery_fee),
            "tip_amount": money_str(self.tip_amount),
            "total_amount": money_str(self.total_amount),
        }


def compute_subtotal(items: Sequence[LineItem]) -> Decimal:
    if not items:
        raise ValidationError("Cart is empty.", code=ReasonCode.EMPTY_CART)
    return round_money(sum((item.total_price for item in items), ZERO))


def free_item_discount(items: Sequence[LineItem]) -> Decimal:
    """One unit of the cheapest line, add-ons included."""
    if not items:
        return ZERO
    return to_money(min(item.unit_total for item in items))


def _money_input(value, field_name: str, error_cls, code: str) -> Decimal:
    try:
        return to_money(value, field_name=field_name)
    except ValueError as exc:
        raise error_cls(str(exc), code=code) from exc


def compute(
    items: Sequence[LineItem],
    fulfillment_type: str,
    discount=ZERO,
    *,
    tip_amount=ZERO,
    rules: PricingRules,
) -> PriceBreakdown:
    if fulfillment_type not in VALID_FULFILLMENT_TYPES:
        raise ValidationError(f"fulfillment_type '{fulfillment_type}' not valid.")

    subtotal = compute_subtotal(items)

    discount = _money_input(
        discount, "discount", InvalidDiscount, ReasonCode.INVALID_DISCOUNT,
    )
    if discount < 0:
        raise InvalidDiscount(f"Discount must be non-negative, got {discount}.")
    if discount > subtotal:
        raise InvalidDiscount(
            f"Discount {discount} exceeds subtotal {subtotal}."
        )

    tip = _money_input(tip_amount, "tip_amount", ValidationError, ReasonCode.INVALID_PRICE)
    if tip < 0:
        raise ValidationError(
            f"Tip must be non-negative, got {tip}.", code=ReasonCode.INVALID_PRICE,
        )

    delivery_fee = rules.delivery_fee if fulfillment_type == DELIVERY else ZERO
    taxable = subtotal - discount
    tax = round_money(taxable * rules.tax_rate)
    total = round_money(taxable + tax + delivery_fee + tip)

    return PriceBreakdown(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        delivery_fee=delivery_fee,
        tip_amount=tip,
        total_amount=total,
        line_totals=tuple(item.total_price for item in items),
    )
