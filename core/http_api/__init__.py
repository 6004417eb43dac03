"""
Bakery HTTP API - Public API
============================
"""

from core.http_api.contracts import HttpApiErrorBody, HttpApiResponse
from core.http_api.dependencies import HttpApiDependencies
from core.http_api.errors import (
    error_response,
    fulfillment_error_response,
    http_status_for,
    map_rejection_reason,
    rejection_response,
    success_response,
)

__all__ = [
    "HttpApiErrorBody",
    "HttpApiResponse",
    "HttpApiDependencies",
    "error_response",
    "fulfillment_error_response",
    "http_status_for",
    "map_rejection_reason",
    "rejection_response",
    "success_response",
]
