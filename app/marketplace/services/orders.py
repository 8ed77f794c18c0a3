"""
Order lifecycle engine.

OrderService coordinates the Order state machine with the payment gateway:

    place     -> manual-capture intent (escrow hold), order PLACED
    webhook   -> PLACED -> PAYMENT_HELD
    claim     -> PAYMENT_HELD -> CLAIMED, SLA deadline set
    deliver   -> CLAIMED/IN_PROGRESS -> DELIVERED, Delivery created
    complete  -> capture + payout transfer, DELIVERED -> COMPLETED
    cancel    -> refund hold, PLACED/PAYMENT_HELD -> CANCELLED

Every status change goes through Order.apply_transition(). Operations that
call the gateway lock the order row first and check the transition before
moving any money.

Identity is always checked before state: a stranger completing a delivered
order gets 403, not 409.

Usage:
    from marketplace.gateways import get_payment_gateway
    from marketplace.services import OrderService

    service = OrderService(gateway=get_payment_gateway())
    placed = service.place(writer_user_id="writer_1", service_id=service_id)
    placed.client_secret  # handed to the writer's browser to confirm the card
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.db.models import Count, Q, Sum
from django.utils import timezone

from core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService

from marketplace.gateways import IdempotencyKeyGenerator
from marketplace.models import Delivery, Order, Provider, Review
from marketplace.services.catalog import get_service
from marketplace.services.pricing import split_price
from marketplace.services.providers import get_provider
from marketplace.state_machines import OrderStatus, ProviderStatus

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from marketplace.gateways import PaymentGateway

logger = logging.getLogger(__name__)

DELIVERY_FIELDS = (
    "summary",
    "strengths",
    "weaknesses",
    "recommendations",
    "score",
    "file_key",
    "file_name",
)

REVIEWABLE_STATES = (OrderStatus.DELIVERED, OrderStatus.COMPLETED)


@dataclass(frozen=True)
class PlacedOrder:
    order: Order
    client_secret: str


# =============================================================================
# Lookups & Actor Checks
# =============================================================================


def get_order(order_id: uuid.UUID | str, for_update: bool = False) -> Order:
    """
    Raises:
        NotFoundError: order_not_found
    """
    queryset = Order.objects.select_related("provider", "service")
    if for_update:
        queryset = queryset.select_for_update(of=("self",))
    try:
        return queryset.get(pk=order_id)
    except (Order.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError(
            "Order not found",
            error_code="order_not_found",
            details={"order_id": str(order_id)},
        ) from None


def require_writer(order: Order, actor_user_id: str) -> None:
    if order.writer_user_id != actor_user_id:
        raise PermissionDeniedError(
            "Only the ordering writer may perform this action",
            details={"order_id": str(order.id)},
        )


def require_order_provider(order: Order, actor_user_id: str) -> None:
    if order.provider.user_id != actor_user_id:
        raise PermissionDeniedError(
            "Only the order's provider may perform this action",
            details={"order_id": str(order.id)},
        )


def require_order_party(order: Order, actor_user_id: str) -> None:
    if actor_user_id not in (order.writer_user_id, order.provider.user_id):
        raise PermissionDeniedError(
            "Only the writer or the provider may view this order",
            details={"order_id": str(order.id)},
        )


def require_payout_account(order: Order) -> str:
    """
    Raises:
        ValidationError: provider_stripe_not_configured
    """
    account_id = order.provider.stripe_account_id
    if not account_id:
        raise ValidationError(
            "Provider has no payment account to receive the payout",
            error_code="provider_stripe_not_configured",
            details={"provider_id": str(order.provider_id)},
        )
    return account_id


def release_payout(gateway: PaymentGateway, order: Order) -> str:
    """
    Capture the held payment and transfer the provider's share.

    Idempotency keys are derived from the order id, so repeating the call
    after a partial failure moves no extra money.

    Returns:
        The transfer id
    """
    account_id = require_payout_account(order)
    if order.stripe_payment_intent_id:
        gateway.capture_payment(
            order.stripe_payment_intent_id,
            idempotency_key=IdempotencyKeyGenerator.generate("capture", order.id),
        )
    transfer_id = gateway.transfer_to_provider(
        amount_cents=order.provider_payout_cents,
        account_id=account_id,
        transfer_group=f"order_{order.id}",
        currency=order.currency,
        idempotency_key=IdempotencyKeyGenerator.generate("transfer", order.id),
    )
    logger.info(
        "Provider payout released",
        extra={
            "order_id": str(order.id),
            "provider_id": str(order.provider_id),
            "amount_cents": order.provider_payout_cents,
            "transfer_id": transfer_id,
        },
    )
    return transfer_id


def recompute_provider_rating(provider_id: uuid.UUID | str) -> None:
    """Recompute avg_rating and total_orders_completed from all reviews."""
    totals = Review.objects.filter(provider_id=provider_id).aggregate(
        rating_sum=Sum("rating"),
        review_count=Count("id"),
    )
    count = totals["review_count"] or 0
    avg_rating = None
    if count:
        avg_rating = (Decimal(totals["rating_sum"]) / Decimal(count)).quantize(
            Decimal("0.01"),
            rounding=ROUND_HALF_UP,
        )
    Provider.objects.filter(pk=provider_id).update(
        avg_rating=avg_rating,
        total_orders_completed=count,
        updated_at=timezone.now(),
    )


# =============================================================================
# Order Service
# =============================================================================


class OrderService(BaseService):
    """Order operations for writers and providers."""

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    # ==========================================================================
    # Placement & Queries
    # ==========================================================================

    def place(
        self,
        writer_user_id: str,
        service_id: uuid.UUID | str,
        script_id: str = "",
        project_id: str = "",
    ) -> PlacedOrder:
        """
        Place an order and open the escrow hold.

        The intent is created first; the order row is only written once the
        processor has accepted it.

        Raises:
            NotFoundError: service_not_found
            ConflictError: service_not_available
            PaymentGatewayError: Intent creation failed
        """
        service = get_service(service_id)
        if not service.active or service.provider.status != ProviderStatus.ACTIVE:
            raise ConflictError(
                "Service is not available for ordering",
                error_code="service_not_available",
                details={"service_id": str(service.id)},
            )

        split = split_price(service.price_cents)
        order_id = uuid.uuid4()
        intent = self.gateway.create_payment_intent(
            amount_cents=split.price_cents,
            currency=service.currency,
            metadata={
                "order_id": str(order_id),
                "service_id": str(service.id),
                "provider_id": str(service.provider_id),
                "writer_user_id": writer_user_id,
            },
            idempotency_key=IdempotencyKeyGenerator.generate("create_intent", order_id),
        )

        order = Order.objects.create(
            id=order_id,
            writer_user_id=writer_user_id,
            provider=service.provider,
            service=service,
            script_id=script_id or "",
            project_id=project_id or "",
            price_cents=split.price_cents,
            platform_fee_cents=split.platform_fee_cents,
            provider_payout_cents=split.provider_payout_cents,
            currency=service.currency,
            stripe_payment_intent_id=intent.intent_id,
        )

        self.get_logger().info(
            "Order placed",
            extra={
                "order_id": str(order.id),
                "service_id": str(service.id),
                "writer_user_id": writer_user_id,
                "price_cents": order.price_cents,
                "payment_intent_id": intent.intent_id,
            },
        )
        return PlacedOrder(order=order, client_secret=intent.client_secret)

    def get(self, order_id: uuid.UUID | str, actor_user_id: str) -> Order:
        order = get_order(order_id)
        require_order_party(order, actor_user_id)
        return order

    def list_for_actor(self, actor_user_id: str) -> QuerySet[Order]:
        """Orders the caller placed or is providing."""
        return Order.objects.select_related("provider", "service").filter(
            Q(writer_user_id=actor_user_id) | Q(provider__user_id=actor_user_id)
        )

    # ==========================================================================
    # Payment Hold (webhook)
    # ==========================================================================

    def mark_payment_held(self, intent_id: str) -> Order | None:
        """
        Record that the writer's card authorisation is held.

        Only moves PLACED orders; redelivered events are no-ops.

        Returns:
            The order, or None if no order uses this intent
        """
        with self.atomic():
            order = (
                Order.objects.select_for_update()
                .filter(stripe_payment_intent_id=intent_id)
                .first()
            )
            if order is None:
                return None
            if order.status != OrderStatus.PLACED:
                return order
            order.apply_transition("mark_payment_held")

        self.get_logger().info(
            "Payment hold acquired",
            extra={"order_id": str(order.id), "payment_intent_id": intent_id},
        )
        return order

    # ==========================================================================
    # Provider Actions
    # ==========================================================================

    def claim(self, order_id: uuid.UUID | str, actor_user_id: str) -> Order:
        """
        Raises:
            PermissionDeniedError: Caller is not the order's provider
            InvalidStateTransitionError: order_not_claimable
        """
        order = get_order(order_id)
        require_order_provider(order, actor_user_id)
        order.apply_transition("claim", turnaround_days=order.service.turnaround_days)

        self.get_logger().info(
            "Order claimed",
            extra={"order_id": str(order.id), "sla_deadline": order.sla_deadline.isoformat()},
        )
        return order

    def deliver(self, order_id: uuid.UUID | str, actor_user_id: str, payload: dict[str, Any]) -> Delivery:
        """
        Attach the coverage and move the order to DELIVERED.

        Raises:
            PermissionDeniedError: Caller is not the order's provider
            InvalidStateTransitionError: order_not_deliverable
        """
        order = get_order(order_id)
        require_order_provider(order, actor_user_id)

        with self.atomic():
            order.apply_transition("deliver")
            delivery = Delivery.objects.create(
                order=order,
                **{name: payload[name] for name in DELIVERY_FIELDS if payload.get(name) is not None},
            )

        self.get_logger().info(
            "Order delivered",
            extra={"order_id": str(order.id), "delivery_id": str(delivery.id)},
        )
        return delivery

    def delivery_upload_url(self, order_id: uuid.UUID | str, actor_user_id: str) -> dict[str, Any]:
        """
        Presigned-POST style target for the provider's PDF report.

        Raises:
            PermissionDeniedError: Caller is not the order's provider
        """
        order = get_order(order_id)
        require_order_provider(order, actor_user_id)

        timestamp = int(timezone.now().timestamp() * 1000)
        key = f"{settings.COVERAGE_DELIVERY_PREFIX}/{order.id}/{timestamp}-coverage-report.pdf"
        return {
            "uploadUrl": settings.COVERAGE_DELIVERY_UPLOAD_URL,
            "method": "POST",
            "uploadFields": {
                "key": key,
                "bucket": settings.COVERAGE_DELIVERY_BUCKET,
                "Content-Type": "application/pdf",
            },
        }

    # ==========================================================================
    # Writer Actions
    # ==========================================================================

    def complete(self, order_id: uuid.UUID | str, actor_user_id: str) -> Order:
        """
        Accept the delivery: capture, pay the provider, complete.

        The provider's rating aggregates are refreshed after the commit.

        Raises:
            PermissionDeniedError: Caller is not the writer
            InvalidStateTransitionError: order_not_completable
            ValidationError: provider_stripe_not_configured
            PaymentGatewayError: Capture or transfer failed (order unchanged)
        """
        require_writer(get_order(order_id), actor_user_id)

        with self.atomic():
            order = get_order(order_id, for_update=True)
            order.require_transition("complete")
            transfer_id = release_payout(self.gateway, order)
            order.apply_transition("complete", transfer_id=transfer_id)

        self.get_logger().info(
            "Order completed",
            extra={"order_id": str(order.id), "transfer_id": transfer_id},
        )
        self._refresh_provider_rating(order.provider_id, order_id=str(order.id))
        return order

    def cancel(self, order_id: uuid.UUID | str, actor_user_id: str) -> Order:
        """
        Cancel before the provider claims; the hold is refunded.

        Raises:
            PermissionDeniedError: Caller is not the writer
            InvalidStateTransitionError: order_not_cancellable
            PaymentGatewayError: Refund failed (order unchanged)
        """
        require_writer(get_order(order_id), actor_user_id)

        with self.atomic():
            order = get_order(order_id, for_update=True)
            order.require_transition("cancel")
            if order.stripe_payment_intent_id:
                self.gateway.refund(
                    order.stripe_payment_intent_id,
                    idempotency_key=IdempotencyKeyGenerator.generate("refund", order.id),
                )
            order.apply_transition("cancel")

        self.get_logger().info("Order cancelled", extra={"order_id": str(order.id)})
        return order

    # ==========================================================================
    # Delivery & Reviews
    # ==========================================================================

    def get_delivery(self, order_id: uuid.UUID | str, actor_user_id: str) -> Delivery:
        """
        Raises:
            PermissionDeniedError: Caller is neither writer nor provider
            NotFoundError: delivery_not_found
        """
        order = get_order(order_id)
        require_order_party(order, actor_user_id)
        try:
            return Delivery.objects.get(order=order)
        except Delivery.DoesNotExist:
            raise NotFoundError(
                "Order has no delivery yet",
                error_code="delivery_not_found",
                details={"order_id": str(order.id)},
            ) from None

    def submit_review(
        self,
        order_id: uuid.UUID | str,
        actor_user_id: str,
        rating: int,
        comment: str = "",
    ) -> Review:
        """
        Rate a delivered or completed order once.

        The provider's rating aggregates are refreshed afterwards; a failure
        there is logged and the review stands.

        Raises:
            PermissionDeniedError: Caller is not the writer
            ValidationError: invalid_rating
            ConflictError: order_not_reviewable / review_already_exists
        """
        order = get_order(order_id)
        require_writer(order, actor_user_id)

        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", error_code="invalid_rating")
        if order.status not in REVIEWABLE_STATES:
            raise ConflictError(
                "Only delivered or completed orders can be reviewed",
                error_code="order_not_reviewable",
                details={"status": order.status},
            )
        if Review.objects.filter(order=order).exists():
            raise ConflictError("Order already reviewed", error_code="review_already_exists")

        try:
            with self.atomic():
                review = Review.objects.create(
                    order=order,
                    writer_user_id=actor_user_id,
                    provider=order.provider,
                    rating=rating,
                    comment=comment or "",
                )
        except IntegrityError:
            raise ConflictError("Order already reviewed", error_code="review_already_exists") from None

        self._refresh_provider_rating(order.provider_id, review_id=str(review.id))
        return review

    def _refresh_provider_rating(self, provider_id: uuid.UUID, **context: str) -> None:
        """Best-effort: a failed recompute is logged, never raised."""
        try:
            recompute_provider_rating(provider_id)
        except Exception:
            self.get_logger().exception(
                "Provider rating recompute failed",
                extra={"provider_id": str(provider_id), **context},
            )

    def list_reviews(self, provider_id: uuid.UUID | str) -> QuerySet[Review]:
        provider = get_provider(provider_id)
        return Review.objects.filter(provider=provider).order_by("-created_at")
