"""
Bakery Numbering — Public API
================================
"""

from core.numbering.engine import (
    CHANNEL_CODES,
    date_stamp,
    format_order_number,
)
from core.numbering.provider import (
    OrderNumberExhausted,
    OrderNumberProvider,
    RandomOrderNumberProvider,
)

__all__ = [
    "CHANNEL_CODES",
    "date_stamp",
    "format_order_number",
    "OrderNumberExhausted",
    "OrderNumberProvider",
    "RandomOrderNumberProvider",
]
