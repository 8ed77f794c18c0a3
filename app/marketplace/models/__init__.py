"""
Coverage models.

Exports:
    Provider, ProviderReview: Provider profiles and admin decisions
    Service: Catalog offerings
    Order: Order lifecycle state machine
    Delivery, Review: Delivered coverage and writer ratings
    Dispute, DisputeEvent: Dispute workflow and its audit trail
"""

from marketplace.models.catalog import Service
from marketplace.models.delivery import Delivery, Review
from marketplace.models.dispute import Dispute, DisputeEvent
from marketplace.models.order import ORDER_TRANSITION_ERRORS, Order
from marketplace.models.provider import Provider, ProviderReview

__all__ = [
    "ORDER_TRANSITION_ERRORS",
    "Delivery",
    "Dispute",
    "DisputeEvent",
    "Order",
    "Provider",
    "ProviderReview",
    "Review",
    "Service",
]
