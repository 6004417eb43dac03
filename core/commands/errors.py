"""
Bakery Command Layer — Error Taxonomy
========================================
Every rejected operation raises exactly one of these.
Each error carries a RejectionReason so callers can surface
the code and message without parsing strings.

ValidationError      — bad input, rejected before any side effect
InvalidDiscount      — discount < 0 or > subtotal (a ValidationError)
PromoRejected        — promo code not applicable to this order
SlotUnavailable      — slot full, blocked, blacked out, closed, or lock timeout
InvalidTransition    — status change not allowed from the current status
GatewayFailure       — payment capture/refund failed, prior state kept
OrderNotFound        — unknown order id
"""

from __future__ import annotations

from core.commands.rejection import ReasonCode, RejectionReason


class FulfillmentError(Exception):
    """Base error for all fulfillment operations."""

    default_code = ReasonCode.INVALID_REQUEST

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        policy_name: str | None = None,
    ):
        self.reason = RejectionReason(
            code=code or self.default_code,
            message=message,
            policy_name=policy_name or type(self).__name__,
        )
        super().__init__(message)

    @classmethod
    def from_reason(cls, reason: RejectionReason) -> "FulfillmentError":
        return cls(reason.message, code=reason.code, policy_name=reason.policy_name)

    @property
    def code(self) -> str:
        return self.reason.code

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, **self.reason.to_dict()}


class ValidationError(FulfillmentError, ValueError):
    """Input rejected before any side effect. Safe to retry after fixing."""

    default_code = ReasonCode.INVALID_REQUEST


class InvalidDiscount(ValidationError):
    """Discount is negative or larger than the subtotal."""

    default_code = ReasonCode.INVALID_DISCOUNT


class PromoRejected(FulfillmentError):
    """Promo code is not applicable. Message is customer-facing."""

    default_code = ReasonCode.PROMO_NOT_FOUND


class SlotUnavailable(FulfillmentError):
    """Requested slot cannot take the order. Caller should offer alternates."""

    default_code = ReasonCode.SLOT_FULL


class InvalidTransition(FulfillmentError):
    """Status change not permitted from the order's current status."""

    default_code = ReasonCode.ORDER_TERMINAL


class GatewayFailure(FulfillmentError):
    """Payment gateway declined or failed. Order state is unchanged."""

    default_code = ReasonCode.PAYMENT_CAPTURE_FAILED


class OrderNotFound(FulfillmentError):
    """No order with the given id."""

    default_code = ReasonCode.ORDER_NOT_FOUND
