"""
Bakery Command Layer — Rejections and Errors
===============================================
Every rejected operation produces exactly one RejectionReason,
raised inside exactly one FulfillmentError subclass.
"""

from core.commands.errors import (
    FulfillmentError,
    GatewayFailure,
    InvalidDiscount,
    InvalidTransition,
    OrderNotFound,
    PromoRejected,
    SlotUnavailable,
    ValidationError,
)
from core.commands.rejection import (
    ReasonCode,
    RejectionReason,
)

__all__ = [
    # ── Rejection ─────────────────────────────────────────────
    "RejectionReason",
    "ReasonCode",
    # ── Errors ────────────────────────────────────────────────
    "FulfillmentError",
    "ValidationError",
    "InvalidDiscount",
    "PromoRejected",
    "SlotUnavailable",
    "InvalidTransition",
    "GatewayFailure",
    "OrderNotFound",
]
