"""
Service model: a priced coverage offering owned by one provider.
"""

from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from marketplace.state_machines import ServiceTier


class Service(UUIDPrimaryKeyMixin, BaseModel):
    """
    Coverage offering listed in the catalog.

    A service survives changes to its provider's status: when the provider
    is suspended the service simply stops being listed.

    Fields:
        provider: Owning provider
        title/description: Listing copy
        tier: Depth of analysis
        price_cents: Current price (orders snapshot it at placement)
        currency: ISO 4217 code (lowercase)
        turnaround_days: Days from claim to SLA deadline
        max_pages: Longest script accepted
        active: Listed in the public catalog
    """

    provider = models.ForeignKey(
        "marketplace.Provider",
        on_delete=models.PROTECT,
        related_name="services",
        help_text="Provider offering this service",
    )

    title = models.CharField(
        max_length=200,
        help_text="Listing title",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="What the writer receives",
    )

    tier = models.CharField(
        max_length=32,
        choices=ServiceTier.choices,
        db_index=True,
        help_text="Depth of analysis",
    )

    price_cents = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Price in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    turnaround_days = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Days between claim and SLA deadline",
    )

    max_pages = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Maximum script length in pages",
    )

    active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether the service is listed",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Service"
        verbose_name_plural = "Services"
        indexes = [
            models.Index(fields=["active", "tier"], name="cov_service_active_tier_idx"),
            models.Index(fields=["provider", "active"], name="cov_service_provider_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price_cents__gt=0),
                name="coverage_service_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(turnaround_days__gt=0),
                name="coverage_service_turnaround_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Service({self.id}, {self.title}, {self.price_cents / 100:.2f} {self.currency.upper()})"
