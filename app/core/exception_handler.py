"""
DRF exception handler rendering every error in one envelope.

Configured via REST_FRAMEWORK["EXCEPTION_HANDLER"]. Domain errors
(core.exceptions.BaseApplicationError) are rendered from their own
status_code and to_dict(); DRF's built-in exceptions are normalised to the
same {"error", "error_code", "details"} shape.
"""

from __future__ import annotations

import logging

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)

DRF_ERROR_CODES = {
    drf_exceptions.ValidationError: "validation_error",
    drf_exceptions.ParseError: "invalid_payload",
    drf_exceptions.NotAuthenticated: "not_authenticated",
    drf_exceptions.AuthenticationFailed: "not_authenticated",
    drf_exceptions.PermissionDenied: "forbidden",
    drf_exceptions.NotFound: "not_found",
    drf_exceptions.MethodNotAllowed: "method_not_allowed",
    drf_exceptions.Throttled: "rate_limited",
}


def api_exception_handler(exc, context):
    """Render domain and DRF exceptions as {"error", "error_code", "details"}."""
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"Request failed: {exc.error_code}",
            extra={
                "error_code": exc.error_code,
                "status_code": exc.status_code,
                "view": type(view).__name__ if view else None,
            },
        )
        return Response(exc.to_dict(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    error_code = "error"
    for exc_class, code in DRF_ERROR_CODES.items():
        if isinstance(exc, exc_class):
            error_code = code
            break

    if isinstance(exc, drf_exceptions.ValidationError):
        body = {
            "error": "Invalid request payload",
            "error_code": error_code,
            "details": response.data,
        }
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        body = {"error": str(detail or exc), "error_code": error_code}

    response.data = body
    return response
