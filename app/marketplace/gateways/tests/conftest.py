"""
Pytest fixtures for payment gateway tests.

Sections:
    - Stripe Fixtures
    - Stripe Error Fixtures
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from marketplace.gateways import StripePaymentGateway


# =============================================================================
# Stripe Fixtures
# =============================================================================


@pytest.fixture
def stripe_settings(settings):
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test"
    settings.FRONTEND_URL = "https://app.example.com/"
    return settings


@pytest.fixture
def stripe_gateway(stripe_settings):
    return StripePaymentGateway()


@pytest.fixture
def mock_payment_intent():
    """Patch stripe.PaymentIntent for the duration of the test."""
    with patch("stripe.PaymentIntent") as payment_intent:
        yield payment_intent


@pytest.fixture
def stripe_object():
    """Build a Stripe-like response object with attribute access."""

    def _create(**fields):
        return SimpleNamespace(**fields)

    return _create


# =============================================================================
# Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    error = stripe.CardError(
        message="Your card was declined.",
        param=None,
        code="card_declined",
    )
    error.decline_code = "insufficient_funds"
    return error


@pytest.fixture
def invalid_request_error():
    return stripe.InvalidRequestError(
        message="No such payment_intent",
        param="payment_intent",
        code="resource_missing",
    )
