"""
Bakery Promotion Engine — Promo Records
==========================================
Promo codes, the discount a validated code yields, and the
redemption ledger entries used for per-customer caps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.primitives.money import ZERO, to_decimal, to_money
from core.time.temporal import ValidityWindow

PROMO_PERCENTAGE = "PERCENTAGE"
PROMO_FIXED_AMOUNT = "FIXED_AMOUNT"
PROMO_FREE_ITEM = "FREE_ITEM"

VALID_PROMO_TYPES = frozenset({PROMO_PERCENTAGE, PROMO_FIXED_AMOUNT, PROMO_FREE_ITEM})


def normalize_code(code: str) -> str:
    """Promo codes are case-insensitive and stored upper-case."""
    if not code or not isinstance(code, str) or not code.strip():
        raise ValueError("promo code must be a non-empty string.")
    return code.strip().upper()


@dataclass(frozen=True)
class PromoRecord:
    code: str
    promo_type: str
    value: Decimal
    min_order_amount: Optional[Decimal] = None
    max_uses: Optional[int] = None
    max_uses_per_user: Optional[int] = None
    used_count: int = 0
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool = True
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "code", normalize_code(self.code))
        if self.promo_type not in VALID_PROMO_TYPES:
            raise ValueError(f"promo_type '{self.promo_type}' not valid.")
        value = to_decimal(self.value, field_name="value")
        if value < 0:
            raise ValueError("value must be non-negative.")
        if self.promo_type == PROMO_PERCENTAGE and value > 100:
            raise ValueError("PERCENTAGE value must be <= 100.")
        object.__setattr__(self, "value", value)
        if self.min_order_amount is not None:
            object.__setattr__(
                self, "min_order_amount",
                to_money(self.min_order_amount, field_name="min_order_amount"),
            )
        for name in ("max_uses", "max_uses_per_user"):
            limit = getattr(self, name)
            if limit is not None and (not isinstance(limit, int) or limit < 0):
                raise ValueError(f"{name} must be a non-negative integer or None.")
        if not isinstance(self.used_count, int) or self.used_count < 0:
            raise ValueError("used_count must be a non-negative integer.")
        # Validates starts_at <= expires_at.
        self.window

    @property
    def window(self) -> ValidityWindow:
        return ValidityWindow(start=self.starts_at, end=self.expires_at)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "promo_type": self.promo_type,
            "value": str(self.value),
            "min_order_amount": (
                str(self.min_order_amount) if self.min_order_amount is not None else None
            ),
            "max_uses": self.max_uses,
            "max_uses_per_user": self.max_uses_per_user,
            "used_count": self.used_count,
            "starts_at": self.starts_at.isoformat() if self.starts_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "is_active": self.is_active,
            "description": self.description,
        }


@dataclass(frozen=True)
class PromoDiscount:
    """
    Result of a successful validation.

    FREE_ITEM promos carry amount 0 and is_free_item=True; the order
    lifecycle resolves the actual amount against the cart lines.
    """

    code: str
    promo_type: str
    amount: Decimal = ZERO
    is_free_item: bool = False


@dataclass(frozen=True)
class PromoRedemption:
    code: str
    order_id: str
    customer_id: Optional[str]
    amount: Decimal
    redeemed_at: Optional[datetime] = None
