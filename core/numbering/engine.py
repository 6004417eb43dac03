"""
Bakery Numbering — Order Number Format
=========================================
Human-readable order numbers: PREFIX-CHANNEL-YYYYMMDD-NNNN

    PCP-WEB-20261019-0427
    PCP-POS-20261019-9310

Doctrine:
- Stateless formatting: same inputs → same number.
- The random suffix is drawn by the provider, never here.
- Time is passed explicitly — never read from the system clock here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core.primitives.fulfillment import SOURCE_PHONE, SOURCE_POS, SOURCE_WEB

CHANNEL_CODES = {
    SOURCE_WEB: "WEB",
    SOURCE_PHONE: "PHN",
    SOURCE_POS: "POS",
}

SUFFIX_DIGITS = 4


def date_stamp(issued_at: datetime) -> str:
    """UTC calendar date of issue as YYYYMMDD."""
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)
    else:
        issued_at = issued_at.astimezone(timezone.utc)
    return issued_at.strftime("%Y%m%d")


def format_order_number(
    *,
    prefix: str,
    source: str,
    issued_at: datetime,
    suffix: int,
    digits: int = SUFFIX_DIGITS,
) -> str:
    if source not in CHANNEL_CODES:
        raise ValueError(f"source '{source}' has no channel code.")
    if not isinstance(suffix, int) or suffix < 0 or suffix >= 10 ** digits:
        raise ValueError(f"suffix must be int in [0, {10 ** digits}).")
    return f"{prefix}-{CHANNEL_CODES[source]}-{date_stamp(issued_at)}-{str(suffix).zfill(digits)}"
