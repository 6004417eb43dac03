"""
Bakery Order Engine — Policies
=================================
Each policy returns None (pass) or a RejectionReason (fail).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.primitives.fulfillment import STATUS_REFUNDED, WALKIN
from core.primitives.workflow import ORDER_WORKFLOW
from engines.order.models import Order
from engines.timeslot.commands import Timeslot


def order_must_not_be_terminal_policy(order: Order) -> Optional[RejectionReason]:
    if ORDER_WORKFLOW.is_terminal(order.status):
        return RejectionReason(
            code=ReasonCode.ORDER_TERMINAL,
            message=f"Order {order.order_number} is already {order.status}.",
            policy_name="order_must_not_be_terminal_policy")
    return None


def order_must_not_be_refunded_policy(order: Order) -> Optional[RejectionReason]:
    if order.status == STATUS_REFUNDED:
        return RejectionReason(
            code=ReasonCode.ORDER_ALREADY_REFUNDED,
            message=f"Order {order.order_number} has already been refunded.",
            policy_name="order_must_not_be_refunded_policy")
    return None


def order_must_be_schedulable_policy(order: Order) -> Optional[RejectionReason]:
    if order.fulfillment_type == WALKIN:
        return RejectionReason(
            code=ReasonCode.ORDER_NOT_SCHEDULABLE,
            message=f"Walk-in order {order.order_number} cannot be scheduled.",
            policy_name="order_must_be_schedulable_policy")
    return None


def transition_must_be_allowed_policy(
    order: Order, to_state: str,
) -> Optional[RejectionReason]:
    if not ORDER_WORKFLOW.is_valid_transition(order.status, to_state):
        return RejectionReason(
            code=ReasonCode.ORDER_TERMINAL,
            message=f"Order {order.order_number} cannot move from {order.status} to {to_state}.",
            policy_name="transition_must_be_allowed_policy")
    return None


def slot_must_match_order_policy(
    slot: Timeslot, fulfillment_type: str, scheduled_date,
) -> Optional[RejectionReason]:
    if slot.fulfillment_type != fulfillment_type:
        return RejectionReason(
            code=ReasonCode.INVALID_REQUEST,
            message=(
                f"Timeslot is for {slot.fulfillment_type}, "
                f"order is {fulfillment_type}."
            ),
            policy_name="slot_must_match_order_policy")
    if scheduled_date is not None and slot.slot_date != scheduled_date:
        return RejectionReason(
            code=ReasonCode.INVALID_REQUEST,
            message=(
                f"Timeslot is on {slot.slot_date.isoformat()}, "
                f"not {scheduled_date.isoformat()}."
            ),
            policy_name="slot_must_match_order_policy")
    return None


def refund_amount_policy(order: Order, amount: Decimal) -> Optional[RejectionReason]:
    refundable = order.refundable_amount
    if refundable == 0:
        if amount != 0:
            return RejectionReason(
                code=ReasonCode.INVALID_REFUND_AMOUNT,
                message=f"Order {order.order_number} was never paid; nothing to refund.",
                policy_name="refund_amount_policy")
        return None
    if amount <= 0 or amount > refundable:
        return RejectionReason(
            code=ReasonCode.INVALID_REFUND_AMOUNT,
            message=f"Refund amount must be greater than 0 and at most {refundable}.",
            policy_name="refund_amount_policy")
    return None
