"""
Bakery Command Layer — Rejection Model
=========================================
Structured rejection reasons for denied operations.

A RejectionReason is NOT an exception. It is the explanation structure
carried by every FulfillmentError and returned by every policy function.

Every rejection must be:
- Deterministic (same input → same rejection)
- Machine-readable (code)
- Human-readable (message, safe to show to a customer)
- Traceable (policy_name)
"""

from __future__ import annotations

from dataclasses import dataclass


# ══════════════════════════════════════════════════════════════
# REJECTION REASON (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for a rejected operation.

    Fields:
        code:        Machine-readable rejection code (e.g. 'SLOT_FULL').
        message:     Human-readable explanation.
        policy_name: Name of the policy or check that caused rejection.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        """Serialize for API error bodies and logs."""
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Input validation ──────────────────────────────────────
    INVALID_REQUEST = "INVALID_REQUEST"
    EMPTY_CART = "EMPTY_CART"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_PRICE = "INVALID_PRICE"
    INVALID_DISCOUNT = "INVALID_DISCOUNT"
    INVALID_REFUND_AMOUNT = "INVALID_REFUND_AMOUNT"

    # ── Promotions ────────────────────────────────────────────
    PROMO_NOT_FOUND = "PROMO_NOT_FOUND"
    PROMO_INACTIVE = "PROMO_INACTIVE"
    PROMO_NOT_STARTED = "PROMO_NOT_STARTED"
    PROMO_EXPIRED = "PROMO_EXPIRED"
    PROMO_BELOW_MINIMUM = "PROMO_BELOW_MINIMUM"
    PROMO_EXHAUSTED = "PROMO_EXHAUSTED"
    PROMO_CUSTOMER_LIMIT = "PROMO_CUSTOMER_LIMIT"
    PROMO_BUSY = "PROMO_BUSY"

    # ── Timeslots ─────────────────────────────────────────────
    SLOT_NOT_FOUND = "SLOT_NOT_FOUND"
    SLOT_FULL = "SLOT_FULL"
    SLOT_BLOCKED = "SLOT_BLOCKED"
    SLOT_IN_USE = "SLOT_IN_USE"
    SLOT_LOCK_TIMEOUT = "SLOT_LOCK_TIMEOUT"
    DATE_BLACKED_OUT = "DATE_BLACKED_OUT"
    STORE_CLOSED = "STORE_CLOSED"

    # ── Order lifecycle ───────────────────────────────────────
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_TERMINAL = "ORDER_TERMINAL"
    ORDER_ALREADY_REFUNDED = "ORDER_ALREADY_REFUNDED"
    ORDER_NOT_SCHEDULABLE = "ORDER_NOT_SCHEDULABLE"
    ORDER_MODIFIED_CONCURRENTLY = "ORDER_MODIFIED_CONCURRENTLY"

    # ── Payment gateway ───────────────────────────────────────
    PAYMENT_CAPTURE_FAILED = "PAYMENT_CAPTURE_FAILED"
    PAYMENT_REFUND_FAILED = "PAYMENT_REFUND_FAILED"
