"""
Base exception classes for application-wide error handling.

Every domain error raised by the service layer derives from
BaseApplicationError. Each class carries the HTTP status it maps to, so the
DRF exception handler (core.exception_handler) can render any of them without
a per-view translation table.

Exception Hierarchy:
    BaseApplicationError (base, 400)
    ├── ValidationError - Malformed or semantically invalid input (400)
    ├── PermissionDeniedError - Caller is not allowed to act (403)
    ├── NotFoundError - Unknown resource id (404)
    ├── ConflictError - Current state forbids the operation (409)
    └── ExternalServiceError - Third-party failure (502)

Usage:
    from core.exceptions import ConflictError, NotFoundError

    raise NotFoundError("Order not found", error_code="order_not_found")

    raise ConflictError(
        "Order cannot be claimed",
        error_code="order_not_claimable",
        details={"status": order.status},
    )

Note:
    Error codes are stable lowercase identifiers that clients switch on.
    Messages are for humans and may change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, current state, etc.)
        status_code: HTTP status used when the error reaches the API layer
    """

    default_error_code: str = "application_error"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Order cannot be claimed",
                "error_code": "order_not_claimable",
                "details": {"status": "claimed"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails in the service layer.

    Serializer-level validation is left to DRF; use this for rules that need
    the database or the current state (e.g. a refund larger than the order).
    """

    default_error_code: str = "validation_error"
    status_code: int = 400


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "not_found"
    status_code: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller is authenticated but may not perform the action.

    Missing identity is handled by DRF (NotAuthenticated, 401).
    """

    default_error_code: str = "forbidden"
    status_code: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current resource state.

    Use for:
    - Duplicates (one provider per user, one review per order)
    - Invalid state transitions
    - Lost compare-and-set races
    """

    default_error_code: str = "conflict"
    status_code: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error where it is caught; the client only sees the
    message and code.
    """

    default_error_code: str = "external_service_error"
    status_code: int = 502
