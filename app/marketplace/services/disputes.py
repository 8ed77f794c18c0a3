"""
Dispute resolution engine.

A dispute freezes a delivered (or SLA-breached) order until an admin
resolves it:

    resolved_refund    -> full refund, order REFUNDED
    resolved_partial   -> partial refund, order REFUNDED
    resolved_no_refund -> capture + payout, order COMPLETED

Every dispute change appends a DisputeEvent in the same transaction. A
gateway failure during resolution rolls back the dispute, the order and the
event together.

Usage:
    service = DisputeService(gateway=get_payment_gateway())
    dispute = service.open_dispute(order_id, writer_id, reason="quality")
    service.resolve_dispute(dispute.id, admin_id, "resolved_partial", refund_amount_cents=5000)
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError

from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.services import BaseService

from marketplace.gateways import IdempotencyKeyGenerator
from marketplace.models import Dispute, DisputeEvent, Order
from marketplace.services.orders import get_order, release_payout, require_writer
from marketplace.state_machines import (
    DISPUTE_ACTIVE_STATES,
    DISPUTE_RESOLUTION_STATES,
    DisputeEventType,
    DisputeReason,
    DisputeStatus,
)

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from marketplace.gateways import PaymentGateway

SLA_DISPUTE_DESCRIPTION = "Auto-opened after SLA deadline elapsed."
SLA_BREACH_NOTE = "SLA deadline exceeded; dispute opened automatically."


def get_dispute(dispute_id: uuid.UUID | str, for_update: bool = False) -> Dispute:
    """
    Raises:
        NotFoundError: dispute_not_found
    """
    queryset = Dispute.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=dispute_id)
    except (Dispute.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError(
            "Dispute not found",
            error_code="dispute_not_found",
            details={"dispute_id": str(dispute_id)},
        ) from None


def has_active_dispute(order: Order) -> bool:
    return Dispute.objects.filter(order=order, status__in=DISPUTE_ACTIVE_STATES).exists()


def record_event(
    dispute: Dispute,
    actor_user_id: str,
    event_type: str,
    note: str = "",
    from_status: str | None = None,
    to_status: str | None = None,
) -> DisputeEvent:
    return DisputeEvent.objects.create(
        dispute=dispute,
        actor_user_id=actor_user_id,
        event_type=event_type,
        note=note,
        from_status=from_status,
        to_status=to_status,
    )


def open_sla_breach_dispute(order: Order, actor_user_id: str) -> Dispute:
    """
    Dispute an order whose SLA deadline passed without delivery.

    Caller holds the order row lock inside a transaction.

    Raises:
        InvalidStateTransitionError: order_not_in_progress
    """
    order.apply_transition("breach_sla")
    dispute = Dispute.objects.create(
        order=order,
        opened_by_user_id=actor_user_id,
        reason=DisputeReason.NON_DELIVERY,
        description=SLA_DISPUTE_DESCRIPTION,
    )
    record_event(dispute, actor_user_id, DisputeEventType.OPENED, to_status=dispute.status)
    record_event(
        dispute,
        actor_user_id,
        DisputeEventType.SLA_BREACH_AUTO_OPEN,
        note=SLA_BREACH_NOTE,
        to_status=dispute.status,
    )
    return dispute


class DisputeService(BaseService):
    """Dispute operations for writers and admins."""

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    def open_dispute(
        self,
        order_id: uuid.UUID | str,
        actor_user_id: str,
        reason: str,
        description: str = "",
    ) -> Dispute:
        """
        Writer disputes a delivered order.

        Raises:
            PermissionDeniedError: Caller is not the writer
            ValidationError: invalid_reason
            ConflictError: dispute_already_exists
            InvalidStateTransitionError: order_not_disputable
        """
        require_writer(get_order(order_id), actor_user_id)
        if reason not in DisputeReason.values:
            raise ValidationError(f"Unknown dispute reason: {reason}", error_code="invalid_reason")

        try:
            with self.atomic():
                order = get_order(order_id, for_update=True)
                if has_active_dispute(order):
                    raise ConflictError(
                        "Order already has an open dispute",
                        error_code="dispute_already_exists",
                        details={"order_id": str(order.id)},
                    )
                order.apply_transition("open_dispute")
                dispute = Dispute.objects.create(
                    order=order,
                    opened_by_user_id=actor_user_id,
                    reason=reason,
                    description=description or "",
                )
                record_event(dispute, actor_user_id, DisputeEventType.OPENED, to_status=dispute.status)
        except IntegrityError:
            raise ConflictError(
                "Order already has an open dispute",
                error_code="dispute_already_exists",
            ) from None

        self.get_logger().info(
            "Dispute opened",
            extra={"dispute_id": str(dispute.id), "order_id": str(order.id), "reason": reason},
        )
        return dispute

    def start_review(
        self,
        dispute_id: uuid.UUID | str,
        actor_user_id: str,
        admin_notes: str | None = None,
    ) -> Dispute:
        """
        Admin triage: OPEN -> UNDER_REVIEW.

        Raises:
            NotFoundError: dispute_not_found
            ConflictError: dispute_not_reviewable
        """
        get_dispute(dispute_id)
        with self.atomic():
            dispute = get_dispute(dispute_id, for_update=True)
            if dispute.status != DisputeStatus.OPEN:
                raise ConflictError(
                    "Only open disputes can be taken under review",
                    error_code="dispute_not_reviewable",
                    details={"status": dispute.status},
                )
            from_status = dispute.status
            dispute.start_review(admin_notes=admin_notes)
            dispute.save()
            record_event(
                dispute,
                actor_user_id,
                DisputeEventType.UNDER_REVIEW,
                note=admin_notes or "",
                from_status=from_status,
                to_status=dispute.status,
            )
        return dispute

    def resolve_dispute(
        self,
        dispute_id: uuid.UUID | str,
        actor_user_id: str,
        resolution: str,
        admin_notes: str | None = None,
        refund_amount_cents: int | None = None,
    ) -> Dispute:
        """
        Resolve an active dispute and settle the order's escrow.

        All checks run before any money moves or any row changes.

        Raises:
            NotFoundError: dispute_not_found
            ValidationError: invalid_resolution / refund_amount_required_for_partial /
                refund_amount_invalid / provider_stripe_not_configured
            ConflictError: dispute_not_resolvable
            PaymentGatewayError: Refund, capture or transfer failed
        """
        if resolution not in DISPUTE_RESOLUTION_STATES:
            raise ValidationError(
                f"Unknown resolution: {resolution}",
                error_code="invalid_resolution",
            )
        if resolution == DisputeStatus.RESOLVED_PARTIAL and refund_amount_cents is None:
            raise ValidationError(
                "refund_amount_cents is required for a partial refund",
                error_code="refund_amount_required_for_partial",
            )

        get_dispute(dispute_id)
        with self.atomic():
            dispute = get_dispute(dispute_id, for_update=True)
            if dispute.status not in DISPUTE_ACTIVE_STATES:
                raise ConflictError(
                    "Dispute is already resolved",
                    error_code="dispute_not_resolvable",
                    details={"status": dispute.status},
                )
            order = get_order(dispute.order_id, for_update=True)

            if resolution == DisputeStatus.RESOLVED_NO_REFUND:
                order.require_transition("settle")
                transfer_id = release_payout(self.gateway, order)
                order.apply_transition("settle", transfer_id=transfer_id)
                refunded_cents = None
            else:
                order.require_transition("refund")
                refunded_cents = self._refund_amount(order, resolution, refund_amount_cents)
                if order.stripe_payment_intent_id:
                    self.gateway.refund(
                        order.stripe_payment_intent_id,
                        amount_cents=None if resolution == DisputeStatus.RESOLVED_REFUND else refunded_cents,
                        idempotency_key=IdempotencyKeyGenerator.generate("dispute_refund", dispute.id),
                    )
                order.apply_transition("refund")

            from_status = dispute.status
            dispute.resolve(
                resolution,
                resolved_by_user_id=actor_user_id,
                admin_notes=admin_notes,
                refund_amount_cents=refunded_cents,
            )
            dispute.save()
            record_event(
                dispute,
                actor_user_id,
                DisputeEventType.RESOLVED,
                note=admin_notes or "",
                from_status=from_status,
                to_status=dispute.status,
            )

        self.get_logger().info(
            "Dispute resolved",
            extra={
                "dispute_id": str(dispute.id),
                "order_id": str(order.id),
                "resolution": resolution,
                "refund_amount_cents": refunded_cents,
                "order_status": order.status,
            },
        )
        return dispute

    @staticmethod
    def _refund_amount(order: Order, resolution: str, refund_amount_cents: int | None) -> int:
        if resolution == DisputeStatus.RESOLVED_REFUND:
            return order.price_cents
        if not 1 <= refund_amount_cents <= order.price_cents:
            raise ValidationError(
                "refund_amount_cents must be between 1 and the order price",
                error_code="refund_amount_invalid",
                details={"price_cents": order.price_cents},
            )
        return refund_amount_cents

    def list_disputes(self, status: str | None = None) -> QuerySet[Dispute]:
        queryset = Dispute.objects.select_related("order")
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-created_at")

    def list_events(self, dispute_id: uuid.UUID | str) -> QuerySet[DisputeEvent]:
        dispute = get_dispute(dispute_id)
        return dispute.events.order_by("created_at")
