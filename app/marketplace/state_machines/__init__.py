"""
State machine enums for coverage models.
"""

from marketplace.state_machines.states import (
    DISPUTE_ACTIVE_STATES,
    DISPUTE_RESOLUTION_STATES,
    ORDER_SETTLED_STATES,
    ORDER_WORK_STATES,
    DisputeEventType,
    DisputeReason,
    DisputeStatus,
    OrderStatus,
    ProviderReviewDecision,
    ProviderStatus,
    ServiceTier,
)

__all__ = [
    "DISPUTE_ACTIVE_STATES",
    "DISPUTE_RESOLUTION_STATES",
    "ORDER_SETTLED_STATES",
    "ORDER_WORK_STATES",
    "DisputeEventType",
    "DisputeReason",
    "DisputeStatus",
    "OrderStatus",
    "ProviderReviewDecision",
    "ProviderStatus",
    "ServiceTier",
]
