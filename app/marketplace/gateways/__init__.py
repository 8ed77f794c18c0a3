"""
Payment gateways.

Exports:
    PaymentGateway: Capability interface
    StripePaymentGateway: Stripe Connect implementation
    MemoryPaymentGateway: Deterministic in-memory implementation
    get_payment_gateway: The configured gateway instance

Usage:
    from marketplace.gateways import get_payment_gateway

    service = OrderService(gateway=get_payment_gateway())
"""

from __future__ import annotations

from functools import lru_cache

from django.conf import settings
from django.utils.module_loading import import_string

from marketplace.gateways.base import (
    AccountStatus,
    ConnectAccountResult,
    IdempotencyKeyGenerator,
    PaymentGateway,
    PaymentIntentResult,
)
from marketplace.gateways.memory import MemoryPaymentGateway
from marketplace.gateways.stripe_gateway import StripePaymentGateway


@lru_cache(maxsize=None)
def _load_gateway(dotted_path: str) -> PaymentGateway:
    gateway_class = import_string(dotted_path)
    return gateway_class()


def get_payment_gateway() -> PaymentGateway:
    """
    Return the gateway named by settings.COVERAGE_PAYMENT_GATEWAY.

    One instance is built per dotted path and reused for the process lifetime.
    """
    return _load_gateway(settings.COVERAGE_PAYMENT_GATEWAY)


def reset_payment_gateway() -> None:
    """Drop cached gateway instances (tests, settings reloads)."""
    _load_gateway.cache_clear()


__all__ = [
    "AccountStatus",
    "ConnectAccountResult",
    "IdempotencyKeyGenerator",
    "MemoryPaymentGateway",
    "PaymentGateway",
    "PaymentIntentResult",
    "StripePaymentGateway",
    "get_payment_gateway",
    "reset_payment_gateway",
]
