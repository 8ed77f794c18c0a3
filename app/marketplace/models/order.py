"""
Order model: the coverage transaction and its escrow state machine.

The order's status is a protected django-fsm field. Every mutating operation
goes through Order.apply_transition(), which checks the transition's source
states, runs it, and persists the result with a conditional UPDATE
(``WHERE status = <status the transition started from>``). Two requests
racing on the same order therefore produce exactly one winner; the loser gets
the same conflict error an out-of-order call would.

Usage:
    from marketplace.models import Order

    order = Order.objects.select_for_update().get(pk=order_id)
    order.apply_transition("claim", turnaround_days=7)

    # Check without acting (e.g. before calling the payment processor)
    order.require_transition("complete")
"""

from __future__ import annotations

from datetime import timedelta

from django.db import models
from django.db.models import F
from django.utils import timezone
from django_fsm import FSMField, can_proceed, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from marketplace.exceptions import InvalidStateTransitionError
from marketplace.state_machines import OrderStatus

# Conflict code raised when a transition's precondition does not hold
ORDER_TRANSITION_ERRORS = {
    "mark_payment_held": "order_not_awaiting_payment",
    "claim": "order_not_claimable",
    "deliver": "order_not_deliverable",
    "complete": "order_not_completable",
    "open_dispute": "order_not_disputable",
    "breach_sla": "order_not_in_progress",
    "cancel": "order_not_cancellable",
    "refund": "order_not_refundable",
    "settle": "order_not_settleable",
}

# Fields a transition never writes; the price split is fixed at placement
IMMUTABLE_FIELDS = frozenset(
    {
        "id",
        "created_at",
        "version",
        "writer_user_id",
        "provider_id",
        "service_id",
        "price_cents",
        "platform_fee_cents",
        "provider_payout_cents",
        "currency",
    }
)


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A writer's order for one coverage service.

    State Flow:
        PLACED -> PAYMENT_HELD -> CLAIMED -> DELIVERED -> COMPLETED

    Dispute Flow:
        DELIVERED -> DISPUTED (writer)
        CLAIMED/IN_PROGRESS -> DISPUTED (SLA breach)
        DISPUTED -> REFUNDED / COMPLETED (resolution)

    Cancellation Flow:
        PLACED/PAYMENT_HELD -> CANCELLED

    Fields:
        writer_user_id: Ordering writer
        provider/service: What was ordered, from whom
        script_id/project_id: Opaque references to the writer's material
        price_cents/platform_fee_cents/provider_payout_cents: Split fixed
            at placement; price = fee + payout (DB check constraint)
        stripe_payment_intent_id: Manual-capture intent holding the funds
        stripe_transfer_id: Payout transfer, set on completion
        sla_deadline: Delivery due time, set on claim
        delivered_at: When the provider delivered
        version: Incremented on every write
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    writer_user_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Identity-service user id of the ordering writer",
    )

    provider = models.ForeignKey(
        "marketplace.Provider",
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Provider fulfilling the order",
    )

    service = models.ForeignKey(
        "marketplace.Service",
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Service ordered",
    )

    script_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Script registration reference",
    )

    project_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Writer project reference",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=OrderStatus.PLACED,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current order status (managed by FSM)",
    )

    # ==========================================================================
    # Amounts (fixed at placement)
    # ==========================================================================

    price_cents = models.PositiveIntegerField(
        help_text="Service price at placement, in smallest currency unit",
    )

    platform_fee_cents = models.PositiveIntegerField(
        help_text="Platform commission",
    )

    provider_payout_cents = models.PositiveIntegerField(
        help_text="Amount transferred to the provider on completion",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    stripe_transfer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Transfer ID (tr_xxx) of the provider payout",
    )

    # ==========================================================================
    # Timeline
    # ==========================================================================

    sla_deadline = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Delivery due time, set when the order is claimed",
    )

    claimed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the provider claimed the order",
    )

    delivered_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the coverage was delivered",
    )

    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payout was released",
    )

    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the writer cancelled",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented on each write",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["status", "delivered_at"], name="cov_order_status_delivered_idx"),
            models.Index(fields=["status", "sla_deadline"], name="cov_order_status_sla_idx"),
            models.Index(fields=["provider", "status"], name="cov_order_provider_status_idx"),
            models.Index(fields=["status", "updated_at"], name="cov_order_status_updated_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price_cents__gt=0),
                name="coverage_order_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    price_cents=F("platform_fee_cents") + F("provider_payout_cents")
                ),
                name="coverage_order_price_split",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.id}, {self.status}, {self.price_cents / 100:.2f} {self.currency.upper()})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment on update."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # Transition Runner
    # ==========================================================================

    def require_transition(self, name: str) -> None:
        """
        Raise InvalidStateTransitionError unless `name` may run now.

        Raises:
            InvalidStateTransitionError: error_code from ORDER_TRANSITION_ERRORS
        """
        if not can_proceed(getattr(self, name)):
            raise self._transition_error(name, self.status)

    def apply_transition(self, name: str, *args, **kwargs) -> None:
        """
        Run transition `name` and persist it with a compare-and-set.

        The UPDATE only matches while the stored status still equals the
        status the transition started from.

        Raises:
            InvalidStateTransitionError: Precondition failed, or another
                writer moved the order first
        """
        self.require_transition(name)
        source = self.status
        getattr(self, name)(*args, **kwargs)

        self.updated_at = timezone.now()
        values = {
            field.attname: getattr(self, field.attname)
            for field in self._meta.concrete_fields
            if field.attname not in IMMUTABLE_FIELDS
        }
        updated = type(self).objects.filter(pk=self.pk, status=source).update(
            version=F("version") + 1,
            **values,
        )
        if not updated:
            raise self._transition_error(name, source, concurrent=True)
        self.refresh_from_db(fields=["version"])

    def _transition_error(
        self,
        name: str,
        status: str,
        concurrent: bool = False,
    ) -> InvalidStateTransitionError:
        reason = "was modified concurrently" if concurrent else f"is {status}"
        return InvalidStateTransitionError(
            f"Cannot {name.replace('_', ' ')} order {self.pk}: order {reason}",
            error_code=ORDER_TRANSITION_ERRORS[name],
            details={"order_id": str(self.pk), "status": status, "transition": name},
        )

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=OrderStatus.PLACED,
        target=OrderStatus.PAYMENT_HELD,
    )
    def mark_payment_held(self):
        """
        The writer's card authorisation is held by the processor.

        Transition: PLACED -> PAYMENT_HELD
        """

    @transition(
        field=status,
        source=OrderStatus.PAYMENT_HELD,
        target=OrderStatus.CLAIMED,
    )
    def claim(self, turnaround_days: int):
        """
        Provider takes the order; the SLA clock starts.

        Transition: PAYMENT_HELD -> CLAIMED
        """
        now = timezone.now()
        self.claimed_at = now
        self.sla_deadline = now + timedelta(days=turnaround_days)

    @transition(
        field=status,
        source=[OrderStatus.CLAIMED, OrderStatus.IN_PROGRESS],
        target=OrderStatus.DELIVERED,
    )
    def deliver(self):
        """Transition: CLAIMED/IN_PROGRESS -> DELIVERED"""
        self.delivered_at = timezone.now()

    @transition(
        field=status,
        source=OrderStatus.DELIVERED,
        target=OrderStatus.COMPLETED,
    )
    def complete(self, transfer_id: str):
        """
        Payment captured and payout transferred.

        Transition: DELIVERED -> COMPLETED (writer acceptance or auto-complete)
        """
        self.stripe_transfer_id = transfer_id
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=OrderStatus.DELIVERED,
        target=OrderStatus.DISPUTED,
    )
    def open_dispute(self):
        """Transition: DELIVERED -> DISPUTED"""

    @transition(
        field=status,
        source=[OrderStatus.CLAIMED, OrderStatus.IN_PROGRESS],
        target=OrderStatus.DISPUTED,
    )
    def breach_sla(self):
        """
        SLA deadline passed without a delivery.

        Transition: CLAIMED/IN_PROGRESS -> DISPUTED
        """

    @transition(
        field=status,
        source=[OrderStatus.PLACED, OrderStatus.PAYMENT_HELD],
        target=OrderStatus.CANCELLED,
    )
    def cancel(self):
        """Transition: PLACED/PAYMENT_HELD -> CANCELLED"""
        self.cancelled_at = timezone.now()

    @transition(
        field=status,
        source=OrderStatus.DISPUTED,
        target=OrderStatus.REFUNDED,
    )
    def refund(self):
        """
        Dispute resolved in the writer's favour (full or partial refund).

        Transition: DISPUTED -> REFUNDED
        """

    @transition(
        field=status,
        source=OrderStatus.DISPUTED,
        target=OrderStatus.COMPLETED,
    )
    def settle(self, transfer_id: str):
        """
        Dispute resolved in the provider's favour; payout released.

        Transition: DISPUTED -> COMPLETED
        """
        self.stripe_transfer_id = transfer_id
        self.completed_at = timezone.now()
