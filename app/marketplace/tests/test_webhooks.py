"""
Tests for the Stripe webhook endpoint and its event handlers.
"""

import json

import pytest
from django.urls import reverse

from marketplace.models import Order, Provider
from marketplace.state_machines import OrderStatus, ProviderStatus
from marketplace.tests.factories import ProviderFactory
from marketplace.webhooks.handlers import dispatch_webhook


@pytest.fixture
def post_event(client, gateway):
    """POST a signed event to the webhook endpoint."""

    def _post(event: dict, signature: str | None = None):
        payload = json.dumps(event).encode()
        if signature is None:
            signature = gateway.sign_payload(payload)
        return client.post(
            reverse("coverage:stripe-webhook"),
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=signature,
        )

    return _post


def capturable_event(intent_id: str) -> dict:
    return {
        "id": "evt_1",
        "type": "payment_intent.amount_capturable_updated",
        "data": {"object": {"id": intent_id, "object": "payment_intent"}},
    }


# =============================================================================
# Endpoint
# =============================================================================


@pytest.mark.django_db
class TestStripeWebhookView:
    def test_missing_signature(self, client):
        response = client.post(
            reverse("coverage:stripe-webhook"),
            data=b"{}",
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "missing_signature"

    def test_invalid_signature(self, post_event, placed_order):
        response = post_event(capturable_event(placed_order.stripe_payment_intent_id), signature="deadbeef")

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_signature"
        assert Order.objects.get(pk=placed_order.pk).status == OrderStatus.PLACED

    def test_get_not_allowed(self, client):
        assert client.get(reverse("coverage:stripe-webhook")).status_code == 405

    def test_unknown_event_is_acknowledged(self, post_event):
        response = post_event({"id": "evt_1", "type": "charge.refunded", "data": {"object": {}}})

        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_unknown_intent_is_acknowledged(self, post_event):
        response = post_event(capturable_event("pi_unknown"))

        assert response.status_code == 200
        assert response.json() == {"received": True}


# =============================================================================
# Payment Hold
# =============================================================================


@pytest.mark.django_db
class TestAmountCapturableUpdated:
    def test_hold_moves_order_to_payment_held(self, post_event, placed_order):
        response = post_event(capturable_event(placed_order.stripe_payment_intent_id))

        assert response.status_code == 200
        assert Order.objects.get(pk=placed_order.pk).status == OrderStatus.PAYMENT_HELD

    def test_redelivery_is_harmless(self, post_event, placed_order):
        post_event(capturable_event(placed_order.stripe_payment_intent_id))
        version = Order.objects.get(pk=placed_order.pk).version

        response = post_event(capturable_event(placed_order.stripe_payment_intent_id))

        assert response.status_code == 200
        stored = Order.objects.get(pk=placed_order.pk)
        assert stored.status == OrderStatus.PAYMENT_HELD
        assert stored.version == version

    def test_missing_intent_id(self):
        result = dispatch_webhook(
            {"id": "evt_1", "type": "payment_intent.amount_capturable_updated", "data": {}}
        )

        assert not result
        assert result.error_code == "invalid_webhook_payload"


# =============================================================================
# Connect Accounts
# =============================================================================


@pytest.mark.django_db
class TestAccountUpdated:
    @pytest.fixture
    def pending_provider(self):
        return ProviderFactory(
            status=ProviderStatus.PENDING_VERIFICATION,
            stripe_onboarding_complete=False,
        )

    def account_event(self, account_id, **flags):
        return {
            "id": "evt_2",
            "type": "account.updated",
            "data": {"object": {"id": account_id, "object": "account", **flags}},
        }

    def test_completed_onboarding_activates(self, post_event, pending_provider):
        response = post_event(
            self.account_event(pending_provider.stripe_account_id, charges_enabled=True, payouts_enabled=True)
        )

        assert response.status_code == 200
        provider = Provider.objects.get(pk=pending_provider.pk)
        assert provider.status == ProviderStatus.ACTIVE
        assert provider.stripe_onboarding_complete is True

    def test_partial_onboarding_keeps_pending(self, post_event, pending_provider):
        post_event(self.account_event(pending_provider.stripe_account_id, charges_enabled=True, payouts_enabled=False))

        provider = Provider.objects.get(pk=pending_provider.pk)
        assert provider.status == ProviderStatus.PENDING_VERIFICATION
        assert provider.stripe_onboarding_complete is False

    def test_camel_case_flags(self, post_event, pending_provider):
        post_event(self.account_event(pending_provider.stripe_account_id, chargesEnabled=True, payoutsEnabled=True))

        assert Provider.objects.get(pk=pending_provider.pk).status == ProviderStatus.ACTIVE

    def test_missing_flags_query_the_gateway(self, post_event, gateway):
        account = gateway.create_connect_account("ada@example.com")
        provider = ProviderFactory(
            status=ProviderStatus.PENDING_VERIFICATION,
            stripe_account_id=account.account_id,
            stripe_onboarding_complete=False,
        )
        gateway.complete_onboarding(account.account_id)

        post_event(self.account_event(account.account_id))

        assert Provider.objects.get(pk=provider.pk).status == ProviderStatus.ACTIVE

    def test_suspended_provider_stays_suspended(self, post_event):
        provider = ProviderFactory(status=ProviderStatus.SUSPENDED, stripe_onboarding_complete=False)

        post_event(self.account_event(provider.stripe_account_id, charges_enabled=True, payouts_enabled=True))

        stored = Provider.objects.get(pk=provider.pk)
        assert stored.status == ProviderStatus.SUSPENDED
        assert stored.stripe_onboarding_complete is True

    def test_unknown_account(self):
        result = dispatch_webhook(self.account_event("acct_missing", charges_enabled=True, payouts_enabled=True))

        assert result.error_code == "provider_not_found"
