"""
Bakery Money Primitive — Fixed-Point Currency Helpers
======================================================
All currency in the fulfillment core is Decimal with two places.

RULES (NON-NEGOTIABLE):
- No float arithmetic on money. Floats are converted through str().
- Rounding is half-up to the cent (0.005 → 0.01).
- Same input → same output on every channel.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any, *, field_name: str = "amount") -> Decimal:
    """Convert int/str/float/Decimal into an unrounded Decimal."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got bool.")
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"{field_name} must be numeric, got {value!r}.") from exc
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValueError(
            f"{field_name} must be numeric, got {type(value).__name__}."
        )
    if not result.is_finite():
        raise ValueError(f"{field_name} must be finite.")
    return result


def round_money(value: Any) -> Decimal:
    """Round half-up to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Any, *, field_name: str = "amount") -> Decimal:
    """Convert and round in one step."""
    return to_decimal(value, field_name=field_name).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Decimal) -> str:
    """Canonical string form for JSON payloads ('59.13')."""
    return str(round_money(value))
