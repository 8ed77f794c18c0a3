"""
Pytest fixtures for coverage tests.

Every test runs against a fresh MemoryPaymentGateway injected through
COVERAGE_PAYMENT_GATEWAY, so services built with get_payment_gateway() and
the test itself see the same instance.

Usage:
    def test_complete_pays_provider(gateway, delivered_order):
        OrderService(gateway=gateway).complete(delivered_order.id, delivered_order.writer_user_id)
        assert len(gateway.transfers) == 1
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from marketplace.gateways import get_payment_gateway, reset_payment_gateway
from marketplace.state_machines import OrderStatus
from marketplace.tests.factories import (
    DisputeFactory,
    OrderFactory,
    ProviderFactory,
    ServiceFactory,
)

WEBHOOK_SECRET = "whsec_test"
ADMIN_USER_ID = "admin_1"


# =============================================================================
# Payment Gateway
# =============================================================================


@pytest.fixture(autouse=True)
def gateway(settings):
    """The MemoryPaymentGateway every service in the test uses."""
    settings.COVERAGE_PAYMENT_GATEWAY = "marketplace.gateways.MemoryPaymentGateway"
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    settings.COVERAGE_ADMIN_USER_IDS = [ADMIN_USER_ID]
    reset_payment_gateway()
    yield get_payment_gateway()
    reset_payment_gateway()


# =============================================================================
# API Clients
# =============================================================================


def _client_for(user_id: str) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_X_AUTH_USER_ID=user_id)
    return client


@pytest.fixture
def client_for():
    """Build an APIClient that sends X-Auth-User-Id: <user_id>."""
    return _client_for


@pytest.fixture
def anonymous_client():
    return APIClient()


@pytest.fixture
def admin_api_client():
    return _client_for(ADMIN_USER_ID)


@pytest.fixture
def provider_client(provider):
    return _client_for(provider.user_id)


# =============================================================================
# Providers & Services
# =============================================================================


@pytest.fixture
def provider(db):
    """ACTIVE provider with a completed payout account."""
    return ProviderFactory()


@pytest.fixture
def service(db, provider):
    return ServiceFactory(provider=provider)


# =============================================================================
# Order State Fixtures
# =============================================================================


@pytest.fixture
def placed_order(db, service):
    return OrderFactory(service=service, status=OrderStatus.PLACED)


@pytest.fixture
def payment_held_order(db, service):
    return OrderFactory(service=service)


@pytest.fixture
def claimed_order(db, service):
    return OrderFactory(service=service, claimed=True)


@pytest.fixture
def delivered_order(db, service):
    return OrderFactory(service=service, delivered=True)


@pytest.fixture
def stale_delivered_order(db, service):
    """Delivered eight days ago; due for auto-completion."""
    return OrderFactory(
        service=service,
        delivered=True,
        delivered_at=timezone.now() - timedelta(days=8),
    )


@pytest.fixture
def breached_order(db, service):
    """Claimed, with the SLA deadline an hour in the past."""
    return OrderFactory(
        service=service,
        claimed=True,
        claimed_at=timezone.now() - timedelta(days=7, hours=1),
        sla_deadline=timezone.now() - timedelta(hours=1),
    )


@pytest.fixture
def open_dispute(db, service):
    return DisputeFactory(order=OrderFactory(service=service, disputed=True))
