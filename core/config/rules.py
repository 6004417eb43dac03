"""
Bakery Core Config — Admin-Configurable Rules
================================================
Doctrine: No hardcoded rates in engine logic.
The tax rate, delivery fee and concurrency limits are supplied
as already-resolved values (see config/settings.py) and handed
to engines explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from core.primitives.money import to_decimal, to_money


# ══════════════════════════════════════════════════════════════
# PRICING RULES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PricingRules:
    """
    Flat pricing inputs for the pricing engine.

    tax_rate:     0.0825 means 8.25%
    delivery_fee: charged once per DELIVERY order
    """

    tax_rate: Decimal = Decimal("0.0825")
    delivery_fee: Decimal = Decimal("5.00")

    def __post_init__(self) -> None:
        rate = to_decimal(self.tax_rate, field_name="tax_rate")
        fee = to_money(self.delivery_fee, field_name="delivery_fee")
        if not Decimal("0") <= rate <= Decimal("1"):
            raise ValueError(f"Tax rate must be between 0 and 1, got {rate}.")
        if fee < 0:
            raise ValueError(f"Delivery fee must be non-negative, got {fee}.")
        object.__setattr__(self, "tax_rate", rate)
        object.__setattr__(self, "delivery_fee", fee)


# ══════════════════════════════════════════════════════════════
# FULFILLMENT SETTINGS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FulfillmentSettings:
    """Operational limits for slot booking and order handling."""

    lock_timeout_seconds: float = 2.0
    default_slot_capacity: int = 25
    order_number_prefix: str = "PCP"

    def __post_init__(self) -> None:
        if self.lock_timeout_seconds <= 0:
            raise ValueError("lock_timeout_seconds must be positive.")
        if not isinstance(self.default_slot_capacity, int) or self.default_slot_capacity < 1:
            raise ValueError("default_slot_capacity must be int >= 1.")
        if not self.order_number_prefix:
            raise ValueError("order_number_prefix must be non-empty.")


def rules_from_settings(values: Mapping[str, Any]) -> tuple[PricingRules, FulfillmentSettings]:
    """
    Build the rule objects from a BAKERY_* settings mapping.
    Missing keys fall back to the dataclass defaults.
    """
    pricing_kwargs = {}
    if values.get("BAKERY_TAX_RATE") is not None:
        pricing_kwargs["tax_rate"] = values["BAKERY_TAX_RATE"]
    if values.get("BAKERY_DELIVERY_FEE") is not None:
        pricing_kwargs["delivery_fee"] = values["BAKERY_DELIVERY_FEE"]

    settings_kwargs = {}
    if values.get("BAKERY_LOCK_TIMEOUT_SECONDS") is not None:
        settings_kwargs["lock_timeout_seconds"] = float(values["BAKERY_LOCK_TIMEOUT_SECONDS"])
    if values.get("BAKERY_DEFAULT_SLOT_CAPACITY") is not None:
        settings_kwargs["default_slot_capacity"] = int(values["BAKERY_DEFAULT_SLOT_CAPACITY"])
    if values.get("BAKERY_ORDER_NUMBER_PREFIX"):
        settings_kwargs["order_number_prefix"] = str(values["BAKERY_ORDER_NUMBER_PREFIX"])

    return PricingRules(**pricing_kwargs), FulfillmentSettings(**settings_kwargs)
