"""
celery-beat schedule for the SLA maintenance sweep.

The DatabaseScheduler copies static beat entries into the PeriodicTask table
and never removes them, so the sweep is kept as a PeriodicTask row synced
from COVERAGE_SLA_MAINTENANCE_SECONDS after every migrate:

    > 0  interval schedule of that many seconds, enabled
    0    existing row disabled (nothing is created)

Usage:
    from marketplace.schedules import sync_sla_maintenance_schedule

    sync_sla_maintenance_schedule()
"""

from __future__ import annotations

import logging

from django.conf import settings
from django_celery_beat.models import IntervalSchedule, PeriodicTask

logger = logging.getLogger(__name__)

SLA_MAINTENANCE_SCHEDULE_NAME = "coverage-sla-maintenance"
SLA_MAINTENANCE_TASK = "marketplace.tasks.run_sla_maintenance"


def sync_sla_maintenance_schedule(**kwargs) -> PeriodicTask | None:
    """
    Create, update or disable the SLA maintenance PeriodicTask.

    Connected to post_migrate; extra signal kwargs are ignored.

    Returns:
        The PeriodicTask row, or None when disabled and no row exists
    """
    seconds = settings.COVERAGE_SLA_MAINTENANCE_SECONDS

    if seconds <= 0:
        task = PeriodicTask.objects.filter(name=SLA_MAINTENANCE_SCHEDULE_NAME).first()
        if task is not None and task.enabled:
            # save() (not update()) so running beat schedulers see the change
            task.enabled = False
            task.save()
            logger.info("SLA maintenance schedule disabled")
        return task

    interval, _ = IntervalSchedule.objects.get_or_create(
        every=seconds,
        period=IntervalSchedule.SECONDS,
    )
    task, created = PeriodicTask.objects.update_or_create(
        name=SLA_MAINTENANCE_SCHEDULE_NAME,
        defaults={
            "task": SLA_MAINTENANCE_TASK,
            "interval": interval,
            "enabled": True,
            "description": (
                "Auto-completes stale deliveries and opens disputes for "
                "orders past their SLA deadline."
            ),
        },
    )
    logger.info(
        "SLA maintenance schedule synced",
        extra={"every_seconds": seconds, "row_created": created},
    )
    return task
