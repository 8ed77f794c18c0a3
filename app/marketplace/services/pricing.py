"""
Commission split for order placement.

split_price() is the only place the platform fee and provider payout are
computed; orders store the result and never recompute it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings


@dataclass(frozen=True)
class PriceSplit:
    """Integer-cent split of an order price. price = fee + payout."""

    price_cents: int
    platform_fee_cents: int
    provider_payout_cents: int


def split_price(price_cents: int, commission_rate: Decimal | str | None = None) -> PriceSplit:
    """
    Split `price_cents` into platform fee and provider payout.

    fee = round_half_up(price * rate), payout = price - fee.

    Example:
        split_price(15000, "0.15")  # PriceSplit(15000, 2250, 12750)
    """
    if price_cents <= 0:
        raise ValueError("price_cents must be positive")
    rate = Decimal(str(commission_rate if commission_rate is not None else settings.COVERAGE_COMMISSION_RATE))
    if not Decimal("0") <= rate <= Decimal("1"):
        raise ValueError("commission rate must be between 0 and 1")

    fee = int((Decimal(price_cents) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return PriceSplit(
        price_cents=price_cents,
        platform_fee_cents=fee,
        provider_payout_cents=price_cents - fee,
    )
