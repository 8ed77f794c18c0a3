"""
Coverage service layer.

Exports:
    ProviderRegistry: Provider registration, onboarding, admin review
    ServiceCatalog: Service publishing and listing
    OrderService: Order lifecycle
    DisputeService: Dispute workflow
    SlaMaintenanceService: Periodic SLA sweep
    ReportService: Earnings statement and payout ledger
    split_price: The commission split
"""

from marketplace.services.catalog import ServiceCatalog
from marketplace.services.disputes import DisputeService
from marketplace.services.maintenance import SlaMaintenanceService
from marketplace.services.orders import OrderService, PlacedOrder
from marketplace.services.pricing import PriceSplit, split_price
from marketplace.services.providers import ProviderRegistration, ProviderRegistry
from marketplace.services.reports import ReportService

__all__ = [
    "DisputeService",
    "OrderService",
    "PlacedOrder",
    "PriceSplit",
    "ProviderRegistration",
    "ProviderRegistry",
    "ReportService",
    "ServiceCatalog",
    "SlaMaintenanceService",
    "split_price",
]
