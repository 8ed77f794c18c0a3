"""
Celery tasks for the coverage marketplace.

Scheduled by celery-beat through the "coverage-sla-maintenance" PeriodicTask
(see marketplace/schedules.py) every COVERAGE_SLA_MAINTENANCE_SECONDS.

Usage:
    from marketplace.tasks import run_sla_maintenance

    run_sla_maintenance.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings

from marketplace.gateways import get_payment_gateway
from marketplace.services import SlaMaintenanceService

logger = logging.getLogger(__name__)


@shared_task(bind=True, acks_late=True)
def run_sla_maintenance(self, actor_user_id: str | None = None) -> dict:
    """
    Run one SLA maintenance sweep.

    Per-order failures are logged inside the sweep and picked up again by
    the next run, so the task itself is not retried.

    Returns:
        {"autoCompleted": n, "slaBreachesDisputed": m}
    """
    actor_user_id = actor_user_id or settings.COVERAGE_SYSTEM_USER_ID
    logger.info(
        "Starting SLA maintenance",
        extra={"task_id": self.request.id, "actor_user_id": actor_user_id},
    )
    return SlaMaintenanceService(gateway=get_payment_gateway()).run(actor_user_id)
