"""
State and choice enums for coverage models.

These are Django TextChoices for database storage and admin integration.
Order and provider statuses are driven by django-fsm transitions on the
models; the enums here are the closed set of values those fields can hold.

State Machines Overview:

Provider Status:
    pending_verification → active (onboarding complete or admin approval)
    any → suspended / deactivated (admin decision)
    suspended → active only through admin re-approval

Order Status:
    placed → payment_held (payment hold webhook)
    payment_held → claimed (provider)
    claimed/in_progress → delivered (provider)
    delivered → completed (writer, or auto-complete)
    delivered → disputed (writer)
    claimed/in_progress → disputed (SLA breach)
    placed/payment_held → cancelled (writer)
    disputed → refunded / completed (dispute resolution)

Dispute Status:
    open → under_review → resolved_refund / resolved_no_refund / resolved_partial
    open → resolved_* (direct resolution)
"""

from django.db import models


class ProviderStatus(models.TextChoices):
    """
    Verification status of a coverage provider.

    Only ACTIVE providers may publish services and have them listed.
    """

    PENDING_VERIFICATION = "pending_verification", "Pending Verification"
    ACTIVE = "active", "Active"
    SUSPENDED = "suspended", "Suspended"
    DEACTIVATED = "deactivated", "Deactivated"


class ProviderReviewDecision(models.TextChoices):
    """Admin decision recorded on a provider review."""

    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    SUSPENDED = "suspended", "Suspended"


class ServiceTier(models.TextChoices):
    """Depth of analysis offered by a coverage service."""

    CONCEPT_NOTES = "concept_notes", "Concept Notes"
    EARLY_DRAFT = "early_draft", "Early Draft"
    POLISH_PROOFREAD = "polish_proofread", "Polish & Proofread"
    COMPETITION_READY = "competition_ready", "Competition Ready"


class OrderStatus(models.TextChoices):
    """
    States for the Order lifecycle.

    Terminal states: COMPLETED, CANCELLED, REFUNDED

    IN_PROGRESS has no entry transition; it is accepted wherever CLAIMED is
    accepted as a source state.
    """

    PLACED = "placed", "Placed"
    PAYMENT_HELD = "payment_held", "Payment Held"
    CLAIMED = "claimed", "Claimed"
    IN_PROGRESS = "in_progress", "In Progress"
    DELIVERED = "delivered", "Delivered"
    COMPLETED = "completed", "Completed"
    DISPUTED = "disputed", "Disputed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


# Orders a provider is actively working on
ORDER_WORK_STATES = (OrderStatus.CLAIMED, OrderStatus.IN_PROGRESS)

# Orders that appear in earnings statements and the payout ledger
ORDER_SETTLED_STATES = (OrderStatus.COMPLETED, OrderStatus.REFUNDED)


class DisputeReason(models.TextChoices):
    """Why a writer (or the SLA job) opened a dispute."""

    NON_DELIVERY = "non_delivery", "Non-delivery"
    QUALITY = "quality", "Quality"
    LATE_DELIVERY = "late_delivery", "Late Delivery"
    OTHER = "other", "Other"


class DisputeStatus(models.TextChoices):
    """
    States for the Dispute lifecycle.

    OPEN and UNDER_REVIEW are active; at most one active dispute may exist
    per order. The RESOLVED_* states are terminal.
    """

    OPEN = "open", "Open"
    UNDER_REVIEW = "under_review", "Under Review"
    RESOLVED_REFUND = "resolved_refund", "Resolved - Refund"
    RESOLVED_NO_REFUND = "resolved_no_refund", "Resolved - No Refund"
    RESOLVED_PARTIAL = "resolved_partial", "Resolved - Partial Refund"


DISPUTE_ACTIVE_STATES = (DisputeStatus.OPEN, DisputeStatus.UNDER_REVIEW)

DISPUTE_RESOLUTION_STATES = (
    DisputeStatus.RESOLVED_REFUND,
    DisputeStatus.RESOLVED_NO_REFUND,
    DisputeStatus.RESOLVED_PARTIAL,
)


class DisputeEventType(models.TextChoices):
    """Kinds of rows in the dispute audit trail."""

    OPENED = "opened", "Opened"
    UNDER_REVIEW = "under_review", "Under Review"
    RESOLVED = "resolved", "Resolved"
    SLA_BREACH_AUTO_OPEN = "sla_breach_auto_open", "SLA Breach Auto-open"
