"""
Bakery HTTP API - Error Mapping
===============================
Stable transport error mapping for fulfillment rejections.

    ValidationError / InvalidDiscount / PromoRejected   400
    OrderNotFound                                       404
    SlotUnavailable / InvalidTransition                 409
    GatewayFailure                                      502
"""

from __future__ import annotations

from typing import Any, Optional

from core.commands.errors import (
    FulfillmentError,
    GatewayFailure,
    InvalidTransition,
    OrderNotFound,
    PromoRejected,
    SlotUnavailable,
    ValidationError,
)
from core.commands.rejection import RejectionReason
from core.http_api.contracts import HttpApiErrorBody, HttpApiResponse

_STATUS_BY_ERROR = (
    (OrderNotFound, 404),
    (SlotUnavailable, 409),
    (InvalidTransition, 409),
    (GatewayFailure, 502),
    (PromoRejected, 400),
    (ValidationError, 400),
)


def http_status_for(error: FulfillmentError) -> int:
    for error_cls, status in _STATUS_BY_ERROR:
        if isinstance(error, error_cls):
            return status
    return 400


def error_response(
    *,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return HttpApiResponse(
        ok=False,
        error=HttpApiErrorBody(
            code=code,
            message=message,
            details=details or {},
        ),
    ).to_dict()


def success_response(data: Any) -> dict[str, Any]:
    return HttpApiResponse(ok=True, data=data).to_dict()


def map_rejection_reason(reason: RejectionReason) -> HttpApiErrorBody:
    return HttpApiErrorBody(
        code=reason.code,
        message=reason.message,
        details={"policy_name": reason.policy_name},
    )


def rejection_response(
    reason: RejectionReason,
    *,
    extra_details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    mapped = map_rejection_reason(reason)
    details = dict(mapped.details)
    if extra_details:
        details.update(extra_details)
    return error_response(
        code=mapped.code,
        message=mapped.message,
        details=details,
    )


def fulfillment_error_response(error: FulfillmentError) -> tuple[int, dict[str, Any]]:
    return http_status_for(error), rejection_response(
        error.reason, extra_details={"error": type(error).__name__},
    )
