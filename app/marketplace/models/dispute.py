"""
Dispute and DisputeEvent models.

A dispute freezes an order's escrow until an admin resolves it. Every change
to a dispute appends a DisputeEvent; events are never updated or deleted.

Usage:
    from marketplace.models import Dispute, DisputeEvent

    dispute = Dispute.objects.create(order=order, opened_by_user_id=writer, reason="quality")
    DisputeEvent.objects.create(
        dispute=dispute,
        actor_user_id=writer,
        event_type=DisputeEventType.OPENED,
        to_status=dispute.status,
    )
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone
from django_fsm import RETURN_VALUE, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from marketplace.exceptions import AuditTrailImmutableError
from marketplace.state_machines import (
    DISPUTE_ACTIVE_STATES,
    DISPUTE_RESOLUTION_STATES,
    DisputeEventType,
    DisputeReason,
    DisputeStatus,
)


class Dispute(UUIDPrimaryKeyMixin, BaseModel):
    """
    Writer (or SLA job) complaint about an order.

    State Flow:
        OPEN -> UNDER_REVIEW -> RESOLVED_*
        OPEN -> RESOLVED_*

    At most one OPEN/UNDER_REVIEW dispute exists per order (partial unique
    constraint). Resolved disputes stay as history.
    """

    order = models.ForeignKey(
        "marketplace.Order",
        on_delete=models.PROTECT,
        related_name="disputes",
        help_text="Disputed order",
    )

    opened_by_user_id = models.CharField(
        max_length=255,
        help_text="Writer who opened the dispute, or the system user",
    )

    reason = models.CharField(
        max_length=32,
        choices=DisputeReason.choices,
        help_text="Dispute category",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Writer's account of the problem",
    )

    status = FSMField(
        default=DisputeStatus.OPEN,
        choices=DisputeStatus.choices,
        db_index=True,
        protected=False,
        help_text="Current dispute status (managed by FSM)",
    )

    admin_notes = models.TextField(
        blank=True,
        default="",
        help_text="Notes from the reviewing admin",
    )

    refund_amount_cents = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Amount refunded on resolution (full price for resolved_refund)",
    )

    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the dispute was resolved",
    )

    resolved_by_user_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Admin who resolved the dispute",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Dispute"
        verbose_name_plural = "Disputes"
        indexes = [
            models.Index(fields=["status", "created_at"], name="cov_dispute_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(status__in=list(DISPUTE_ACTIVE_STATES)),
                name="coverage_dispute_one_active_per_order",
            ),
        ]

    def __str__(self) -> str:
        return f"Dispute({self.id}, {self.order_id}, {self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in DISPUTE_ACTIVE_STATES

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=DisputeStatus.OPEN,
        target=DisputeStatus.UNDER_REVIEW,
    )
    def start_review(self, admin_notes: str | None = None):
        """Transition: OPEN -> UNDER_REVIEW"""
        if admin_notes is not None:
            self.admin_notes = admin_notes

    @transition(
        field=status,
        source=list(DISPUTE_ACTIVE_STATES),
        target=RETURN_VALUE(*DISPUTE_RESOLUTION_STATES),
    )
    def resolve(
        self,
        resolution: str,
        resolved_by_user_id: str,
        admin_notes: str | None = None,
        refund_amount_cents: int | None = None,
    ):
        """
        Transition: OPEN/UNDER_REVIEW -> RESOLVED_REFUND / RESOLVED_NO_REFUND /
        RESOLVED_PARTIAL
        """
        if admin_notes is not None:
            self.admin_notes = admin_notes
        self.refund_amount_cents = refund_amount_cents
        self.resolved_by_user_id = resolved_by_user_id
        self.resolved_at = timezone.now()
        return resolution


class DisputeEventQuerySet(models.QuerySet):
    """Queryset refusing bulk rewrites of the audit trail."""

    def update(self, **kwargs):
        raise AuditTrailImmutableError("Dispute events cannot be updated")

    def delete(self):
        raise AuditTrailImmutableError("Dispute events cannot be deleted")


class DisputeEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Append-only audit row for a dispute.

    Saving an existing event or deleting one raises AuditTrailImmutableError.
    """

    dispute = models.ForeignKey(
        Dispute,
        on_delete=models.PROTECT,
        related_name="events",
        help_text="Dispute this event belongs to",
    )

    actor_user_id = models.CharField(
        max_length=255,
        help_text="User (or system user) who caused the event",
    )

    event_type = models.CharField(
        max_length=32,
        choices=DisputeEventType.choices,
        help_text="What happened",
    )

    note = models.TextField(
        blank=True,
        default="",
        help_text="Free-form context",
    )

    from_status = models.CharField(
        max_length=32,
        choices=DisputeStatus.choices,
        null=True,
        blank=True,
        help_text="Dispute status before the event",
    )

    to_status = models.CharField(
        max_length=32,
        choices=DisputeStatus.choices,
        null=True,
        blank=True,
        help_text="Dispute status after the event",
    )

    objects = DisputeEventQuerySet.as_manager()

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Dispute Event"
        verbose_name_plural = "Dispute Events"
        indexes = [
            models.Index(fields=["dispute", "created_at"], name="cov_event_dispute_idx"),
        ]

    def __str__(self) -> str:
        return f"DisputeEvent({self.dispute_id}, {self.event_type})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditTrailImmutableError(
                "Dispute events cannot be updated",
                details={"event_id": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditTrailImmutableError(
            "Dispute events cannot be deleted",
            details={"event_id": str(self.pk)},
        )
