"""
Bakery HTTP API - Handlers
==========================
Framework-agnostic endpoint logic. Each handler takes already-decoded
input plus HttpApiDependencies and returns (http_status, payload).

Handlers never raise for expected rejections: FulfillmentError and
bad input become structured error payloads.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Mapping

from core.commands.errors import FulfillmentError, ValidationError
from core.commands.rejection import ReasonCode
from core.http_api.dependencies import HttpApiDependencies
from core.http_api.errors import error_response, fulfillment_error_response, success_response
from engines.order.commands import CreateOrderRequest, ProductionDetailsUpdate
from engines.timeslot.commands import GenerateSlotsRequest, parse_date

logger = logging.getLogger("bakery.http")

HandlerResult = tuple[int, dict[str, Any]]


def _handles_rejections(handler: Callable[..., HandlerResult]) -> Callable[..., HandlerResult]:
    @functools.wraps(handler)
    def wrapper(*args, **kwargs) -> HandlerResult:
        try:
            return handler(*args, **kwargs)
        except FulfillmentError as exc:
            logger.info(f"{handler.__name__} rejected: {exc.code} {exc}")
            return fulfillment_error_response(exc)
        except (ValueError, KeyError, TypeError) as exc:
            return 400, error_response(code=ReasonCode.INVALID_REQUEST, message=str(exc))
    return wrapper


def _actor(body: Mapping[str, Any]) -> str:
    actor_id = body.get("actor_id") or "system"
    if not isinstance(actor_id, str):
        raise ValidationError("actor_id must be a string.")
    return actor_id


def _reason(body: Mapping[str, Any]) -> str:
    reason = body.get("reason") or ""
    if not isinstance(reason, str):
        raise ValidationError("reason must be a string.")
    return reason


# ══════════════════════════════════════════════════════════════
# ORDERS
# ══════════════════════════════════════════════════════════════

@_handles_rejections
def post_create_order(body: Mapping[str, Any], dependencies: HttpApiDependencies) -> HandlerResult:
    request = CreateOrderRequest.from_dict(body)
    order = dependencies.orders.create_order(request)
    return 201, success_response(order.to_snapshot())


@_handles_rejections
def get_order(order_id: str, dependencies: HttpApiDependencies) -> HandlerResult:
    return 200, success_response(dependencies.orders.get_order(order_id).to_snapshot())


@_handles_rejections
def post_advance_status(
    order_id: str, body: Mapping[str, Any], dependencies: HttpApiDependencies,
) -> HandlerResult:
    order = dependencies.orders.advance_status(order_id, actor_id=_actor(body))
    return 200, success_response(order.to_snapshot())


@_handles_rejections
def post_reschedule_order(
    order_id: str, body: Mapping[str, Any], dependencies: HttpApiDependencies,
) -> HandlerResult:
    if not body.get("scheduled_date"):
        raise ValidationError("scheduled_date is required.")
    order = dependencies.orders.reschedule_order(
        order_id,
        body["scheduled_date"],
        body.get("slot_id") or None,
        actor_id=_actor(body),
    )
    return 200, success_response(order.to_snapshot())


@_handles_rejections
def post_refund_order(
    order_id: str, body: Mapping[str, Any], dependencies: HttpApiDependencies,
) -> HandlerResult:
    order = dependencies.orders.refund_order(
        order_id, body.get("amount"), _reason(body), actor_id=_actor(body),
    )
    return 200, success_response(order.to_snapshot())


@_handles_rejections
def post_cancel_order(
    order_id: str, body: Mapping[str, Any], dependencies: HttpApiDependencies,
) -> HandlerResult:
    order = dependencies.orders.cancel_order(order_id, _reason(body), actor_id=_actor(body))
    return 200, success_response(order.to_snapshot())


@_handles_rejections
def post_production_details(
    order_id: str, body: Mapping[str, Any], dependencies: HttpApiDependencies,
) -> HandlerResult:
    update = ProductionDetailsUpdate(
        production_notes=body.get("production_notes"),
        assigned_baker_id=body.get("assigned_baker_id"),
        packaging_checklist=body.get("packaging_checklist"),
    )
    order = dependencies.orders.update_production_details(order_id, update)
    return 200, success_response(order.to_snapshot())


# ══════════════════════════════════════════════════════════════
# TIMESLOTS
# ══════════════════════════════════════════════════════════════

@_handles_rejections
def post_generate_slots(body: Mapping[str, Any], dependencies: HttpApiDependencies) -> HandlerResult:
    windows = body.get("windows")
    if not isinstance(windows, list):
        raise ValidationError("windows must be a list of {start, end} objects.")
    request = GenerateSlotsRequest(
        start_date=body.get("start_date"),
        end_date=body.get("end_date"),
        fulfillment_type=body.get("fulfillment_type"),
        windows=tuple(windows),
        capacity=body.get("capacity"),
    )
    result = dependencies.timeslots.generate_slots(request)
    return 201, success_response(result.to_dict())


@_handles_rejections
def get_available_slots(
    params: Mapping[str, Any], dependencies: HttpApiDependencies,
) -> HandlerResult:
    start_date = parse_date(params.get("start_date"), "start_date")
    end_date = parse_date(params.get("end_date") or start_date, "end_date")
    if start_date > end_date:
        raise ValidationError("start_date must be on or before end_date.")
    slots = dependencies.timeslots.list_available(
        start_date, end_date, params.get("fulfillment_type") or None,
    )
    return 200, success_response({
        "items": [slot.to_dict() for slot in slots],
        "count": len(slots),
    })


@_handles_rejections
def post_store_hours(body: Mapping[str, Any], dependencies: HttpApiDependencies) -> HandlerResult:
    hours = dependencies.timeslots.set_store_hours(
        body.get("weekday"),
        body.get("open_time") or "00:00",
        body.get("close_time") or "23:59",
        is_closed=bool(body.get("is_closed", False)),
    )
    return 200, success_response({
        "weekday": hours.weekday,
        "open_time": hours.open_time.strftime("%H:%M"),
        "close_time": hours.close_time.strftime("%H:%M"),
        "is_closed": hours.is_closed,
    })


@_handles_rejections
def post_blackout_date(body: Mapping[str, Any], dependencies: HttpApiDependencies) -> HandlerResult:
    blackout = dependencies.timeslots.add_blackout_date(
        parse_date(body.get("date"), "date"), _reason(body),
    )
    return 201, success_response({
        "date": blackout.blackout_date.isoformat(),
        "reason": blackout.reason,
    })


@_handles_rejections
def post_remove_blackout_date(
    body: Mapping[str, Any], dependencies: HttpApiDependencies,
) -> HandlerResult:
    day = parse_date(body.get("date"), "date")
    removed = dependencies.timeslots.remove_blackout_date(day)
    return 200, success_response({"date": day.isoformat(), "removed": removed})
