"""
Bakery Django Adapter Views
===========================
Pass-through HTTP views over core/http_api handlers.
"""

from __future__ import annotations

import json
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from adapters.django_api.wiring import build_dependencies
from core.http_api import handlers
from core.http_api.errors import error_response


def _json_error(code: str, message: str, status: int = 400) -> JsonResponse:
    return JsonResponse(
        error_response(code=code, message=message, details={}),
        status=status,
    )


def _parse_json_body(request: HttpRequest) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        parsed = json.loads(request.body.decode("utf-8"))
    except Exception as exc:
        raise ValueError("Request body must be valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object.")
    return parsed


def _respond(result: tuple[int, dict[str, Any]]) -> JsonResponse:
    status, payload = result
    return JsonResponse(payload, status=status)


def _dispatch_write(handler, request: HttpRequest, *args) -> JsonResponse:
    try:
        body = _parse_json_body(request)
    except ValueError as exc:
        return _json_error("INVALID_REQUEST", str(exc), status=400)
    return _respond(handler(*args, body, build_dependencies()))


# ── Orders ────────────────────────────────────────────────────

@csrf_exempt
@require_POST
def orders_create_view(request: HttpRequest) -> JsonResponse:
    return _dispatch_write(handlers.post_create_order, request)


@require_GET
def order_detail_view(request: HttpRequest, order_id: str) -> JsonResponse:
    return _respond(handlers.get_order(order_id, build_dependencies()))


@csrf_exempt
@require_POST
def order_advance_view(request: HttpRequest, order_id: str) -> JsonResponse:
    return _dispatch_write(handlers.post_advance_status, request, order_id)


@csrf_exempt
@require_POST
def order_reschedule_view(request: HttpRequest, order_id: str) -> JsonResponse:
    return _dispatch_write(handlers.post_reschedule_order, request, order_id)


@csrf_exempt
@require_POST
def order_refund_view(request: HttpRequest, order_id: str) -> JsonResponse:
    return _dispatch_write(handlers.post_refund_order, request, order_id)


@csrf_exempt
@require_POST
def order_cancel_view(request: HttpRequest, order_id: str) -> JsonResponse:
    return _dispatch_write(handlers.post_cancel_order, request, order_id)


@csrf_exempt
@require_POST
def order_production_view(request: HttpRequest, order_id: str) -> JsonResponse:
    return _dispatch_write(handlers.post_production_details, request, order_id)


# ── Timeslots ─────────────────────────────────────────────────

@csrf_exempt
@require_POST
def timeslots_generate_view(request: HttpRequest) -> JsonResponse:
    return _dispatch_write(handlers.post_generate_slots, request)


@require_GET
def timeslots_available_view(request: HttpRequest) -> JsonResponse:
    return _respond(handlers.get_available_slots(request.GET, build_dependencies()))


@csrf_exempt
@require_POST
def store_hours_view(request: HttpRequest) -> JsonResponse:
    return _dispatch_write(handlers.post_store_hours, request)


@csrf_exempt
@require_POST
def blackout_dates_add_view(request: HttpRequest) -> JsonResponse:
    return _dispatch_write(handlers.post_blackout_date, request)


@csrf_exempt
@require_POST
def blackout_dates_remove_view(request: HttpRequest) -> JsonResponse:
    return _dispatch_write(handlers.post_remove_blackout_date, request)
