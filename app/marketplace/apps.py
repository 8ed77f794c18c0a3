"""
Marketplace app configuration.
"""

from django.apps import AppConfig
from django.db.models.signals import post_migrate


class MarketplaceConfig(AppConfig):
    """Configuration for the coverage marketplace application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"
    verbose_name = "Coverage Marketplace"

    def ready(self) -> None:
        # Registers webhook handlers with the dispatcher
        from marketplace.webhooks import handlers  # noqa: F401
        from marketplace.schedules import sync_sla_maintenance_schedule

        post_migrate.connect(sync_sla_maintenance_schedule, sender=self)
