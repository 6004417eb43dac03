"""
Bakery Promotion Engine — Policies
=====================================
Each policy returns None (pass) or a RejectionReason (fail).
PromoValidator runs them in the order they appear in this module
and stops at the first failure, so the customer sees one reason only.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from engines.promotion.commands import PromoRecord


def promo_must_exist_policy(
    promo: Optional[PromoRecord], code: str,
) -> Optional[RejectionReason]:
    if promo is None:
        return RejectionReason(
            code=ReasonCode.PROMO_NOT_FOUND,
            message=f"Promo code '{code}' is not valid.",
            policy_name="promo_must_exist_policy")
    return None


def promo_must_be_active_policy(promo: PromoRecord) -> Optional[RejectionReason]:
    if not promo.is_active:
        return RejectionReason(
            code=ReasonCode.PROMO_INACTIVE,
            message=f"Promo code '{promo.code}' is no longer active.",
            policy_name="promo_must_be_active_policy")
    return None


def promo_window_policy(promo: PromoRecord, now: datetime) -> Optional[RejectionReason]:
    window = promo.window
    if not window.has_started(now):
        return RejectionReason(
            code=ReasonCode.PROMO_NOT_STARTED,
            message=f"Promo code '{promo.code}' is not yet valid.",
            policy_name="promo_window_policy")
    if window.has_ended(now):
        return RejectionReason(
            code=ReasonCode.PROMO_EXPIRED,
            message=f"Promo code '{promo.code}' has expired.",
            policy_name="promo_window_policy")
    return None


def promo_minimum_order_policy(
    promo: PromoRecord, subtotal: Decimal,
) -> Optional[RejectionReason]:
    if promo.min_order_amount is not None and subtotal < promo.min_order_amount:
        return RejectionReason(
            code=ReasonCode.PROMO_BELOW_MINIMUM,
            message=f"Minimum order of ${promo.min_order_amount} required.",
            policy_name="promo_minimum_order_policy")
    return None


def promo_usage_limit_policy(promo: PromoRecord) -> Optional[RejectionReason]:
    if promo.max_uses is not None and promo.used_count >= promo.max_uses:
        return RejectionReason(
            code=ReasonCode.PROMO_EXHAUSTED,
            message=f"Promo code '{promo.code}' has reached its usage limit.",
            policy_name="promo_usage_limit_policy")
    return None


def promo_customer_limit_policy(
    promo: PromoRecord, customer_id: Optional[str], customer_redemptions: int,
) -> Optional[RejectionReason]:
    # Guest checkouts carry no customer id and are not capped.
    if customer_id is None or promo.max_uses_per_user is None:
        return None
    if customer_redemptions >= promo.max_uses_per_user:
        return RejectionReason(
            code=ReasonCode.PROMO_CUSTOMER_LIMIT,
            message=f"You have already used promo code '{promo.code}'.",
            policy_name="promo_customer_limit_policy")
    return None

