"""
Stripe implementation of the payment gateway.

All Stripe calls made by the coverage app go through StripePaymentGateway to
ensure consistent error handling, timeouts, idempotency and observability.

Features:
- Configurable timeouts and network retries on all API calls
- Automatic error translation to marketplace.exceptions
- Structured logging with timing metrics
- Idempotency keys on every money-moving call

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: SDK-level network retries (default: 3)
- FRONTEND_URL: Base URL for onboarding refresh/return pages

Usage:
    from marketplace.gateways import StripePaymentGateway

    gateway = StripePaymentGateway()
    intent = gateway.create_payment_intent(
        amount_cents=15000,
        currency="usd",
        metadata={"order_id": str(order_id)},
        idempotency_key=IdempotencyKeyGenerator.generate("create_intent", order_id),
    )
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import stripe
from django.conf import settings

from marketplace.exceptions import (
    InvalidSignatureError,
    PaymentGatewayError,
    PaymentGatewayUnavailableError,
    PaymentRateLimitedError,
    PaymentRequestInvalidError,
)
from marketplace.gateways.base import (
    AccountStatus,
    ConnectAccountResult,
    PaymentGateway,
    PaymentIntentResult,
)


class StripePaymentGateway(PaymentGateway):
    """
    PaymentGateway backed by Stripe Connect (express accounts, manual capture).

    Thread-safe for use from Celery workers; holds no per-request state.
    """

    def __init__(self) -> None:
        self._configure_stripe()

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this gateway."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Connect Accounts
    # =========================================================================

    def create_connect_account(self, email: str) -> ConnectAccountResult:
        logger = self.get_logger()
        log_context = {"operation": "create_connect_account"}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            account = stripe.Account.create(
                type="express",
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
            )
        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "account_id": account.id,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return ConnectAccountResult(
            account_id=account.id,
            onboarding_url=self.create_account_link(account.id),
        )

    def create_account_link(self, account_id: str) -> str:
        logger = self.get_logger()
        log_context = {"operation": "create_account_link", "account_id": account_id}

        start_time = time.time()
        base_url = settings.FRONTEND_URL.rstrip("/")

        try:
            link = stripe.AccountLink.create(
                account=account_id,
                refresh_url=f"{base_url}/coverage/become-provider?refresh=1",
                return_url=f"{base_url}/coverage/become-provider?success=1",
                type="account_onboarding",
            )
        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={**log_context, "duration_ms": (time.time() - start_time) * 1000},
        )
        return link.url

    def get_account_status(self, account_id: str) -> AccountStatus:
        log_context = {"operation": "get_account_status", "account_id": account_id}
        start_time = time.time()

        try:
            account = stripe.Account.retrieve(account_id)
        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        return AccountStatus(
            chargeable=bool(account.charges_enabled),
            payable=bool(account.payouts_enabled),
        )

    # =========================================================================
    # Payments
    # =========================================================================

    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        """
        Create a manual-capture PaymentIntent (the escrow hold).

        Raises:
            PaymentRequestInvalidError: Invalid parameters
            PaymentGatewayUnavailableError: Stripe service unavailable
        """
        logger = self.get_logger()
        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": amount_cents,
            "currency": currency,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                metadata=metadata,
                payment_method_types=["card"],
                capture_method="manual",
                idempotency_key=idempotency_key,
            )
        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "payment_intent_id": intent.id,
                "status": intent.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return PaymentIntentResult(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            metadata=dict(metadata),
        )

    def capture_payment(
        self,
        intent_id: str,
        idempotency_key: str | None = None,
    ) -> None:
        """
        Capture a held PaymentIntent.

        An intent that already succeeded is left alone, so a retried
        completion after a partial failure does not error.
        """
        logger = self.get_logger()
        log_context = {
            "operation": "capture_payment",
            "payment_intent_id": intent_id,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(intent_id)
            if intent.status == "succeeded":
                logger.info("PaymentIntent already captured", extra=log_context)
                return
            intent = stripe.PaymentIntent.capture(
                intent_id,
                idempotency_key=idempotency_key,
            )
        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "status": intent.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )

    def transfer_to_provider(
        self,
        amount_cents: int,
        account_id: str,
        transfer_group: str,
        currency: str = "usd",
        idempotency_key: str | None = None,
    ) -> str:
        logger = self.get_logger()
        log_context = {
            "operation": "transfer_to_provider",
            "amount_cents": amount_cents,
            "destination_account": account_id,
            "transfer_group": transfer_group,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            transfer = stripe.Transfer.create(
                amount=amount_cents,
                currency=currency,
                destination=account_id,
                transfer_group=transfer_group,
                idempotency_key=idempotency_key,
            )
        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "transfer_id": transfer.id,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return transfer.id

    def refund(
        self,
        intent_id: str,
        amount_cents: int | None = None,
        idempotency_key: str | None = None,
    ) -> str:
        logger = self.get_logger()
        log_context = {
            "operation": "refund",
            "payment_intent_id": intent_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        refund_params: dict[str, Any] = {"payment_intent": intent_id}
        if amount_cents is not None:
            refund_params["amount"] = amount_cents

        try:
            refund = stripe.Refund.create(
                idempotency_key=idempotency_key,
                **refund_params,
            )
        except Exception as e:
            self._handle_stripe_error(e, log_context, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "refund_id": refund.id,
                "status": refund.status,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return refund.id

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify a Stripe-Signature header and parse the event.

        Raises:
            InvalidSignatureError: Signature or payload rejected
        """
        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except (stripe.SignatureVerificationError, ValueError) as e:
            self.get_logger().warning(
                "Stripe webhook signature rejected",
                extra={"error": str(e)},
            )
            raise InvalidSignatureError(
                "Invalid webhook signature",
                processor_code="signature_verification_failed",
            ) from e
        return json.loads(payload)

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to coverage exceptions.

        Raises:
            PaymentRequestInvalidError: Card declined, invalid request, bad API key
            PaymentRateLimitedError: Rate limited
            PaymentGatewayUnavailableError: Network failure or Stripe 5xx
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, PaymentGatewayError):
            raise error

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise PaymentRequestInvalidError(
                str(error.user_message or error),
                processor_code=error.code,
                details={"decline_code": decline_code} if decline_code else None,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise PaymentRequestInvalidError(
                str(error.user_message or error),
                processor_code=error.code,
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise PaymentRateLimitedError(
                "Stripe rate limit exceeded. Please retry.",
                processor_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise PaymentGatewayUnavailableError(
                "Could not connect to Stripe. Please retry.",
                processor_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise PaymentGatewayError(
                "Stripe authentication failed",
                processor_code="authentication_error",
            ) from error

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise PaymentGatewayUnavailableError(
                "Stripe service error. Please retry.",
                processor_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise PaymentGatewayError(
            f"Unexpected Stripe error: {error}",
            processor_code="unknown_error",
        ) from error
