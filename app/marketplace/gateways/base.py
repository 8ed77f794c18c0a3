"""
Payment gateway capability interface.

Business logic talks to the payment processor only through PaymentGateway.
The concrete implementation is chosen once, at the composition root
(marketplace.gateways.get_payment_gateway), from the COVERAGE_PAYMENT_GATEWAY
setting.

Every method raises a marketplace.exceptions.PaymentGatewayError subclass on
failure. Retryable failures (rate limits, outages) set is_retryable; callers
that retry must reuse the same idempotency key.
"""

from __future__ import annotations

import hashlib
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class ConnectAccountResult:
    """
    A freshly provisioned connect account.

    Attributes:
        account_id: Processor account id (acct_xxx)
        onboarding_url: Hosted onboarding page for the provider
    """

    account_id: str
    onboarding_url: str


@dataclass(frozen=True)
class AccountStatus:
    """Capabilities of a connect account."""

    chargeable: bool
    payable: bool

    @property
    def onboarding_complete(self) -> bool:
        return self.chargeable and self.payable


@dataclass(frozen=True)
class PaymentIntentResult:
    """
    A manual-capture payment intent.

    Attributes:
        intent_id: Processor intent id (pi_xxx)
        client_secret: Secret the writer's client confirms the card with
    """

    intent_id: str
    client_secret: str
    metadata: dict[str, str] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for processor calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic for a given (operation, entity, attempt), so a
    retried capture or transfer for the same order never moves money twice.

    Example:
        key = IdempotencyKeyGenerator.generate("transfer", order.id)
        # "transfer:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Gateway Interface
# =============================================================================


class PaymentGateway(ABC):
    """
    Escrow-capable payment processor.

    Funds flow:
        create_payment_intent (hold) -> capture_payment -> transfer_to_provider
        create_payment_intent (hold) -> refund (cancel / dispute refund)
    """

    @abstractmethod
    def create_connect_account(self, email: str) -> ConnectAccountResult:
        """Provision a payout account and return it with its onboarding URL."""

    @abstractmethod
    def create_account_link(self, account_id: str) -> str:
        """Issue a fresh onboarding URL for an existing account."""

    @abstractmethod
    def get_account_status(self, account_id: str) -> AccountStatus:
        """Report whether the account can take charges and receive payouts."""

    @abstractmethod
    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        """Create a manual-capture intent holding `amount_cents`."""

    @abstractmethod
    def capture_payment(
        self,
        intent_id: str,
        idempotency_key: str | None = None,
    ) -> None:
        """Capture a held intent. Capturing an already captured intent is a no-op."""

    @abstractmethod
    def transfer_to_provider(
        self,
        amount_cents: int,
        account_id: str,
        transfer_group: str,
        currency: str = "usd",
        idempotency_key: str | None = None,
    ) -> str:
        """Move `amount_cents` to the provider's account; return the transfer id."""

    @abstractmethod
    def refund(
        self,
        intent_id: str,
        amount_cents: int | None = None,
        idempotency_key: str | None = None,
    ) -> str:
        """Refund an intent in full (amount_cents=None) or in part; return the refund id."""

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify a webhook signature and return the parsed event.

        Raises:
            InvalidSignatureError: Signature does not match the payload
        """
