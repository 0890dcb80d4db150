"""
🚀 ENTERPRISE: Centralized error handling for the REST API.

Pricing engine errors are business-rule failures, never retried. They are
mapped to structured JSON so clients can show "sold out" or "registration
closed" without parsing messages:

    {"error": "capacity_exceeded", "message": "...", "details": {...}}
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.conferences.exceptions import (
    CapacityExceeded,
    FeeNotFound,
    FeeUnavailable,
    NoActiveTier,
    PricingError,
)

logger = logging.getLogger(__name__)

CONFLICT_ERRORS = (CapacityExceeded, FeeUnavailable, NoActiveTier)


def pricing_error_status(error: PricingError) -> int:
    if isinstance(error, FeeNotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, CONFLICT_ERRORS):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def pricing_error_response(error: PricingError, context=None) -> Response:
    """Structured response for a pricing engine error."""
    error_context = context or {}
    http_status = pricing_error_status(error)
    logger.warning(
        f"🔴 [PRICING_ERROR] {error.code}: {error.message}",
        extra={
            'error_type': error.code,
            'error_detail': error.context,
            **error_context
        }
    )
    return Response(
        {
            'error': error.code,
            'message': error.message,
            'details': {key: str(value) for key, value in error.context.items() if value is not None},
        },
        status=http_status
    )


def api_exception_handler(exc, context):
    """DRF ``EXCEPTION_HANDLER``: pricing errors first, then DRF defaults."""
    if isinstance(exc, PricingError):
        view = context.get('view')
        return pricing_error_response(exc, {'view': view.__class__.__name__ if view else None})
    return exception_handler(exc, context)
