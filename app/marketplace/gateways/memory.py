"""
In-memory payment gateway.

Deterministic stand-in for Stripe used by the test suite and local
development (COVERAGE_PAYMENT_GATEWAY = "marketplace.gateways.MemoryPaymentGateway").
Ids come from one counter shared by all object kinds, so the first account is
acct_1, the next intent pi_2, and so on.

Webhooks are signed with a hex HMAC-SHA256 of the raw payload, keyed with
STRIPE_WEBHOOK_SECRET.

Usage:
    gateway = MemoryPaymentGateway()
    account = gateway.create_connect_account("ada@example.com")
    gateway.complete_onboarding(account.account_id)

    # Make the next capture fail
    gateway.fail_next("capture_payment", PaymentGatewayUnavailableError("down"))
"""

from __future__ import annotations

import hashlib
import hmac
import itertools
import json
import logging
from typing import Any

from django.conf import settings

from marketplace.exceptions import InvalidSignatureError
from marketplace.gateways.base import (
    AccountStatus,
    ConnectAccountResult,
    PaymentGateway,
    PaymentIntentResult,
)

logger = logging.getLogger(__name__)


class MemoryPaymentGateway(PaymentGateway):
    """
    PaymentGateway that records every call instead of moving money.

    Attributes:
        accounts: account id -> AccountStatus
        intents: intent id -> {"amount_cents", "currency", "metadata"}
        captured: ids of captured intents
        transfers: one dict per transfer
        refunds: one dict per refund

    Like Stripe, a repeated idempotency key replays the first result instead
    of creating another object.
    """

    def __init__(self, webhook_secret: str | None = None) -> None:
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self._ids = itertools.count(1)
        self._failures: dict[str, Exception] = {}
        self.accounts: dict[str, AccountStatus] = {}
        self.intents: dict[str, dict[str, Any]] = {}
        self.captured: set[str] = set()
        self.transfers: list[dict[str, Any]] = []
        self.refunds: list[dict[str, Any]] = []
        self._replays: dict[str, Any] = {}

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    def fail_next(self, operation: str, error: Exception) -> None:
        """Raise `error` from the next call to `operation`."""
        self._failures[operation] = error

    def _maybe_fail(self, operation: str) -> None:
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    def _replay(self, idempotency_key: str | None) -> Any:
        if idempotency_key is None:
            return None
        return self._replays.get(idempotency_key)

    def _remember(self, idempotency_key: str | None, result: Any) -> Any:
        if idempotency_key is not None:
            self._replays[idempotency_key] = result
        return result

    # =========================================================================
    # Connect Accounts
    # =========================================================================

    def create_connect_account(self, email: str) -> ConnectAccountResult:
        self._maybe_fail("create_connect_account")
        account_id = self._next_id("acct")
        self.accounts[account_id] = AccountStatus(chargeable=False, payable=False)
        return ConnectAccountResult(
            account_id=account_id,
            onboarding_url=self.create_account_link(account_id),
        )

    def create_account_link(self, account_id: str) -> str:
        self._maybe_fail("create_account_link")
        return f"https://connect.stripe.com/setup/{account_id}"

    def get_account_status(self, account_id: str) -> AccountStatus:
        self._maybe_fail("get_account_status")
        return self.accounts.get(account_id, AccountStatus(chargeable=False, payable=False))

    def complete_onboarding(self, account_id: str) -> None:
        """Simulate the provider finishing hosted onboarding."""
        self.accounts[account_id] = AccountStatus(chargeable=True, payable=True)

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
        self._maybe_fail("create_payment_intent")
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed
        intent_id = self._next_id("pi")
        self.intents[intent_id] = {
            "amount_cents": amount_cents,
            "currency": currency,
            "metadata": dict(metadata),
        }
        return self._remember(
            idempotency_key,
            PaymentIntentResult(
                intent_id=intent_id,
                client_secret=f"{intent_id}_secret",
                metadata=dict(metadata),
            ),
        )

    def capture_payment(
        self,
        intent_id: str,
        idempotency_key: str | None = None,
    ) -> None:
        self._maybe_fail("capture_payment")
        self.captured.add(intent_id)

    def transfer_to_provider(
        self,
        amount_cents: int,
        account_id: str,
        transfer_group: str,
        currency: str = "usd",
        idempotency_key: str | None = None,
    ) -> str:
        self._maybe_fail("transfer_to_provider")
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed
        transfer_id = self._next_id("tr")
        self.transfers.append(
            {
                "id": transfer_id,
                "amount_cents": amount_cents,
                "account_id": account_id,
                "transfer_group": transfer_group,
                "currency": currency,
            }
        )
        return self._remember(idempotency_key, transfer_id)

    def refund(
        self,
        intent_id: str,
        amount_cents: int | None = None,
        idempotency_key: str | None = None,
    ) -> str:
        self._maybe_fail("refund")
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed
        refund_id = self._next_id("re")
        self.refunds.append(
            {
                "id": refund_id,
                "intent_id": intent_id,
                "amount_cents": amount_cents,
            }
        )
        return self._remember(idempotency_key, refund_id)

    # =========================================================================
    # Webhooks
    # =========================================================================

    def sign_payload(self, payload: bytes) -> str:
        """Signature verify_webhook accepts for `payload`."""
        return hmac.new(
            self.webhook_secret.encode("utf-8"),
            payload,
            hashlib.sha256,
        ).hexdigest()

    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        if not self.webhook_secret:
            logger.warning("Webhook secret not configured, rejecting request")
            raise InvalidSignatureError("Webhook secret not configured")
        if not hmac.compare_digest(self.sign_payload(payload), signature):
            raise InvalidSignatureError("Invalid webhook signature")
        try:
            return json.loads(payload)
        except ValueError as e:
            raise InvalidSignatureError("Webhook payload is not valid JSON") from e
