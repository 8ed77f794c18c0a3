"""
SLA maintenance sweep.

Run periodically (marketplace.tasks.run_sla_maintenance) or on demand
(POST /jobs/sla-maintenance):

1. Auto-complete: DELIVERED orders older than COVERAGE_AUTO_COMPLETE_DAYS
   whose provider can receive payouts are captured, paid out and completed.
2. SLA breach: CLAIMED/IN_PROGRESS orders past their SLA deadline with no
   active dispute get a non_delivery dispute and move to DISPUTED.

Candidates are selected without locks, then each one is re-read under a row
lock and re-checked; anything that changed in between is skipped. One
order's failure is logged and the sweep continues, so overlapping runs and
racing user actions are safe.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.services import BaseService

from marketplace.models import Order
from marketplace.services.disputes import has_active_dispute, open_sla_breach_dispute
from marketplace.services.orders import get_order, release_payout
from marketplace.state_machines import ORDER_WORK_STATES, OrderStatus

if TYPE_CHECKING:
    from marketplace.gateways import PaymentGateway


class SlaMaintenanceService(BaseService):
    """Auto-complete stale deliveries and dispute missed SLAs."""

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    def run(self, actor_user_id: str | None = None) -> dict[str, int]:
        """
        Run one sweep.

        Returns:
            {"autoCompleted": n, "slaBreachesDisputed": m}
        """
        actor_user_id = actor_user_id or settings.COVERAGE_SYSTEM_USER_ID
        now = timezone.now()

        auto_completed = sum(1 for order_id in self._stale_deliveries(now) if self._auto_complete(order_id, now))
        disputed = sum(
            1 for order_id in self._breached_orders(now) if self._dispute_breach(order_id, now, actor_user_id)
        )

        result = {"autoCompleted": auto_completed, "slaBreachesDisputed": disputed}
        self.get_logger().info("SLA maintenance finished", extra={**result, "actor_user_id": actor_user_id})
        return result

    # ==========================================================================
    # Candidate Selection
    # ==========================================================================

    def _stale_deliveries(self, now) -> list[uuid.UUID]:
        cutoff = now - timedelta(days=settings.COVERAGE_AUTO_COMPLETE_DAYS)
        return list(
            Order.objects.filter(
                status=OrderStatus.DELIVERED,
                delivered_at__lte=cutoff,
                provider__stripe_account_id__isnull=False,
            )
            .exclude(provider__stripe_account_id="")
            .order_by("delivered_at")
            .values_list("id", flat=True)
        )

    def _breached_orders(self, now) -> list[uuid.UUID]:
        return list(
            Order.objects.filter(
                status__in=ORDER_WORK_STATES,
                sla_deadline__lt=now,
            )
            .order_by("sla_deadline")
            .values_list("id", flat=True)
        )

    # ==========================================================================
    # Per-order Actions
    # ==========================================================================

    def _auto_complete(self, order_id: uuid.UUID, now) -> bool:
        logger = self.get_logger()
        cutoff = now - timedelta(days=settings.COVERAGE_AUTO_COMPLETE_DAYS)
        try:
            with self.atomic():
                order = get_order(order_id, for_update=True)
                if (
                    order.status != OrderStatus.DELIVERED
                    or order.delivered_at is None
                    or order.delivered_at > cutoff
                    or not order.provider.stripe_account_id
                ):
                    return False
                transfer_id = release_payout(self.gateway, order)
                order.apply_transition("complete", transfer_id=transfer_id)
        except Exception as e:
            logger.exception(f"Auto-complete failed: {e}", extra={"order_id": str(order_id)})
            return False

        logger.info(
            "Order auto-completed",
            extra={"order_id": str(order_id), "transfer_id": transfer_id},
        )
        return True

    def _dispute_breach(self, order_id: uuid.UUID, now, actor_user_id: str) -> bool:
        logger = self.get_logger()
        try:
            with self.atomic():
                order = get_order(order_id, for_update=True)
                if (
                    order.status not in ORDER_WORK_STATES
                    or order.sla_deadline is None
                    or order.sla_deadline >= now
                    or has_active_dispute(order)
                ):
                    return False
                dispute = open_sla_breach_dispute(order, actor_user_id)
        except Exception as e:
            logger.exception(f"SLA breach dispute failed: {e}", extra={"order_id": str(order_id)})
            return False

        logger.warning(
            "SLA breached, dispute opened",
            extra={"order_id": str(order_id), "dispute_id": str(dispute.id)},
        )
        return True
