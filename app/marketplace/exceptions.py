"""
Coverage-specific exceptions.

Exception Hierarchy:
    ConflictError (core)
    ├── InvalidStateTransitionError - Order transition precondition violated
    └── AuditTrailImmutableError - Dispute event update/delete attempted

    ExternalServiceError (core, 502)
    └── PaymentGatewayError - Base for payment processor failures
        ├── PaymentRequestInvalidError - Permanent request error (400)
        ├── InvalidSignatureError - Webhook signature mismatch (400)
        ├── PaymentRateLimitedError - Rate limited (transient, retry)
        └── PaymentGatewayUnavailableError - Network/API outage (transient, retry)

Usage:
    from marketplace.exceptions import InvalidStateTransitionError, PaymentGatewayError

    try:
        gateway.capture_payment(order.stripe_payment_intent_id)
    except PaymentGatewayError as e:
        if e.is_retryable:
            ...  # leave the order as-is; the next maintenance run retries
        raise
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ConflictError, ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# State Machine Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when an order transition is not allowed from its current status.

    The error_code names the violated precondition (order_not_claimable,
    order_not_cancellable, ...). Also raised when a concurrent request moved
    the order first and the conditional update matched no row.
    """

    default_error_code: str = "invalid_state_transition"


class AuditTrailImmutableError(ConflictError):
    """Raised on an attempt to update or delete a dispute audit event."""

    default_error_code: str = "audit_event_immutable"


# =============================================================================
# Payment Gateway Exceptions
# =============================================================================


class PaymentGatewayError(ExternalServiceError):
    """
    Base exception for payment processor failures.

    Attributes:
        processor_code: The processor's own error code, when it sent one
        is_retryable: Whether retrying the same call (same idempotency key)
            may succeed
    """

    default_error_code: str = "payment_gateway_error"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        processor_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if processor_code:
            details["processor_code"] = processor_code
        super().__init__(message, error_code=error_code, details=details)
        self.processor_code = processor_code


class PaymentRequestInvalidError(PaymentGatewayError):
    """
    The processor rejected the request itself (bad account, bad amount,
    intent not capturable). Retrying will not help.
    """

    default_error_code: str = "payment_request_invalid"
    status_code: int = 400


class InvalidSignatureError(PaymentGatewayError):
    """Webhook payload does not match its signature."""

    default_error_code: str = "invalid_signature"
    status_code: int = 400


class PaymentRateLimitedError(PaymentGatewayError):
    """The processor throttled the request."""

    default_error_code: str = "payment_gateway_error"
    is_retryable: bool = True


class PaymentGatewayUnavailableError(PaymentGatewayError):
    """Network failure, timeout or processor-side 5xx."""

    default_error_code: str = "payment_gateway_error"
    is_retryable: bool = True
