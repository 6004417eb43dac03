"""
Bakery Fulfillment Vocabulary
===============================
Shared string constants for fulfillment types, order channels,
payment methods and order statuses. Engines validate against the
VALID_* frozensets; Django models mirror them as TextChoices.
"""

from __future__ import annotations

# ── Fulfillment types ─────────────────────────────────────────
PICKUP = "PICKUP"
DELIVERY = "DELIVERY"
WALKIN = "WALKIN"
VALID_FULFILLMENT_TYPES = frozenset({PICKUP, DELIVERY, WALKIN})
SCHEDULABLE_FULFILLMENT_TYPES = frozenset({PICKUP, DELIVERY})

# ── Order sources (entry channels) ────────────────────────────
SOURCE_WEB = "web"
SOURCE_PHONE = "phone"
SOURCE_POS = "pos"
VALID_SOURCES = frozenset({SOURCE_WEB, SOURCE_PHONE, SOURCE_POS})

# ── Payment methods ───────────────────────────────────────────
PAYMENT_STRIPE_CARD = "STRIPE_CARD"
PAYMENT_STRIPE_TERMINAL = "STRIPE_TERMINAL"
PAYMENT_CASH = "CASH"
PAYMENT_COMP = "COMP"
VALID_PAYMENT_METHODS = frozenset({
    PAYMENT_STRIPE_CARD, PAYMENT_STRIPE_TERMINAL, PAYMENT_CASH, PAYMENT_COMP,
})
GATEWAY_PAYMENT_METHODS = frozenset({PAYMENT_STRIPE_CARD, PAYMENT_STRIPE_TERMINAL})
PAID_ON_ENTRY_METHODS = frozenset({PAYMENT_CASH, PAYMENT_COMP})

# ── Order statuses ────────────────────────────────────────────
STATUS_NEW = "NEW"
STATUS_CONFIRMED = "CONFIRMED"
STATUS_IN_PRODUCTION = "IN_PRODUCTION"
STATUS_READY = "READY"
STATUS_OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"
STATUS_REFUNDED = "REFUNDED"

ORDER_STATUS_SEQUENCE = (
    STATUS_NEW,
    STATUS_CONFIRMED,
    STATUS_IN_PRODUCTION,
    STATUS_READY,
    STATUS_OUT_FOR_DELIVERY,
    STATUS_COMPLETED,
)
VALID_ORDER_STATUSES = frozenset(ORDER_STATUS_SEQUENCE) | {STATUS_CANCELLED, STATUS_REFUNDED}
