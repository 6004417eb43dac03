"""
Bakery Timeslot Engine — Policies
====================================
Each policy returns None (pass) or a RejectionReason (fail).
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from engines.timeslot.commands import Timeslot


def date_must_not_be_blacked_out_policy(
    slot_date: date, calendar,
) -> Optional[RejectionReason]:
    if calendar.is_blackout(slot_date):
        return RejectionReason(
            code=ReasonCode.DATE_BLACKED_OUT,
            message=f"{slot_date.isoformat()} is unavailable for orders.",
            policy_name="date_must_not_be_blacked_out_policy")
    return None


def store_must_be_open_policy(slot_date: date, calendar) -> Optional[RejectionReason]:
    hours = calendar.get_store_hours(slot_date.weekday())
    if hours is not None and hours.is_closed:
        return RejectionReason(
            code=ReasonCode.STORE_CLOSED,
            message=f"The bakery is closed on {slot_date.strftime('%A')}s.",
            policy_name="store_must_be_open_policy")
    return None


def calendar_policy(slot_date: date, calendar) -> Optional[RejectionReason]:
    return (
        date_must_not_be_blacked_out_policy(slot_date, calendar)
        or store_must_be_open_policy(slot_date, calendar)
    )


def slot_must_exist_policy(
    slot: Optional[Timeslot], slot_id: str,
) -> Optional[RejectionReason]:
    if slot is None:
        return RejectionReason(
            code=ReasonCode.SLOT_NOT_FOUND,
            message=f"Timeslot '{slot_id}' not found.",
            policy_name="slot_must_exist_policy")
    return None


def slot_must_not_be_blocked_policy(slot: Timeslot) -> Optional[RejectionReason]:
    if slot.is_blocked:
        return RejectionReason(
            code=ReasonCode.SLOT_BLOCKED,
            message="This timeslot is not accepting orders.",
            policy_name="slot_must_not_be_blocked_policy")
    return None


def slot_must_have_capacity_policy(slot: Timeslot) -> Optional[RejectionReason]:
    if slot.is_full:
        return RejectionReason(
            code=ReasonCode.SLOT_FULL,
            message="This timeslot is full. Please choose another time.",
            policy_name="slot_must_have_capacity_policy")
    return None


def reservation_policy(
    slot: Optional[Timeslot], slot_id: str, calendar,
) -> Optional[RejectionReason]:
    """Every check a slot must pass before taking one more order."""
    rejection = slot_must_exist_policy(slot, slot_id)
    if rejection is not None:
        return rejection
    return (
        slot_must_not_be_blocked_policy(slot)
        or calendar_policy(slot.slot_date, calendar)
        or slot_must_have_capacity_policy(slot)
    )
