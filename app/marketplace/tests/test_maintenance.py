"""
Tests for the SLA maintenance sweep, its Celery task and its beat schedule.
"""

from datetime import timedelta
from unittest import mock

import pytest
from django.apps import apps
from django.db.models.signals import post_migrate
from django.utils import timezone
from django_celery_beat.models import IntervalSchedule, PeriodicTask

from marketplace.exceptions import PaymentGatewayUnavailableError
from marketplace.models import Dispute, Order
from marketplace.schedules import (
    SLA_MAINTENANCE_SCHEDULE_NAME,
    SLA_MAINTENANCE_TASK,
    sync_sla_maintenance_schedule,
)
from marketplace.services import SlaMaintenanceService
from marketplace.state_machines import DisputeEventType, DisputeReason, DisputeStatus, OrderStatus
from marketplace.tasks import run_sla_maintenance
from marketplace.tests.factories import DisputeFactory, OrderFactory, ProviderFactory, ServiceFactory


@pytest.fixture
def maintenance(gateway):
    return SlaMaintenanceService(gateway=gateway)


@pytest.mark.django_db
class TestSlaMaintenance:
    def test_sweep_completes_and_disputes(self, maintenance, gateway, stale_delivered_order, breached_order):
        result = maintenance.run()

        assert result == {"autoCompleted": 1, "slaBreachesDisputed": 1}

        completed = Order.objects.get(pk=stale_delivered_order.pk)
        assert completed.status == OrderStatus.COMPLETED
        assert completed.stripe_transfer_id == gateway.transfers[0]["id"]

        assert Order.objects.get(pk=breached_order.pk).status == OrderStatus.DISPUTED
        dispute = Dispute.objects.get(order=breached_order)
        assert dispute.reason == DisputeReason.NON_DELIVERY
        assert dispute.status == DisputeStatus.OPEN
        assert dispute.opened_by_user_id == "system"
        assert set(dispute.events.values_list("event_type", flat=True)) == {
            DisputeEventType.OPENED,
            DisputeEventType.SLA_BREACH_AUTO_OPEN,
        }

    def test_second_run_does_nothing(self, maintenance, gateway, stale_delivered_order, breached_order):
        maintenance.run()

        assert maintenance.run() == {"autoCompleted": 0, "slaBreachesDisputed": 0}
        assert len(gateway.transfers) == 1
        assert Dispute.objects.count() == 1

    def test_recent_delivery_and_open_deadline_are_left_alone(self, maintenance, delivered_order, claimed_order):
        assert maintenance.run() == {"autoCompleted": 0, "slaBreachesDisputed": 0}

        assert Order.objects.get(pk=delivered_order.pk).status == OrderStatus.DELIVERED
        assert Order.objects.get(pk=claimed_order.pk).status == OrderStatus.CLAIMED

    def test_provider_without_payout_account_is_skipped(self, maintenance, gateway):
        provider = ProviderFactory(stripe_account_id=None)
        order = OrderFactory(
            service=ServiceFactory(provider=provider),
            delivered=True,
            delivered_at=timezone.now() - timedelta(days=30),
        )

        assert maintenance.run()["autoCompleted"] == 0
        assert Order.objects.get(pk=order.pk).status == OrderStatus.DELIVERED
        assert gateway.transfers == []

    def test_auto_complete_window_follows_settings(self, maintenance, settings, service):
        settings.COVERAGE_AUTO_COMPLETE_DAYS = 2
        order = OrderFactory(service=service, delivered=True, delivered_at=timezone.now() - timedelta(days=3))

        assert maintenance.run()["autoCompleted"] == 1
        assert Order.objects.get(pk=order.pk).status == OrderStatus.COMPLETED

    def test_failure_on_one_order_does_not_stop_the_sweep(self, maintenance, gateway, service):
        first = OrderFactory(service=service, delivered=True, delivered_at=timezone.now() - timedelta(days=10))
        second = OrderFactory(service=service, delivered=True, delivered_at=timezone.now() - timedelta(days=9))
        gateway.fail_next("transfer_to_provider", PaymentGatewayUnavailableError("down"))

        assert maintenance.run()["autoCompleted"] == 1

        assert Order.objects.get(pk=first.pk).status == OrderStatus.DELIVERED
        assert Order.objects.get(pk=second.pk).status == OrderStatus.COMPLETED

    def test_breached_order_with_active_dispute_is_skipped(self, maintenance, breached_order):
        DisputeFactory(order=breached_order)

        assert maintenance.run()["slaBreachesDisputed"] == 0
        assert Order.objects.get(pk=breached_order.pk).status == OrderStatus.CLAIMED

    def test_actor_is_recorded(self, maintenance, breached_order):
        maintenance.run(actor_user_id="admin_1")

        assert Dispute.objects.get(order=breached_order).opened_by_user_id == "admin_1"


@pytest.mark.django_db
class TestRunSlaMaintenanceTask:
    def test_task_runs_sweep(self, stale_delivered_order):
        result = run_sla_maintenance.apply().get()

        assert result == {"autoCompleted": 1, "slaBreachesDisputed": 0}
        assert Order.objects.get(pk=stale_delivered_order.pk).status == OrderStatus.COMPLETED

    def test_task_passes_actor(self):
        with mock.patch("marketplace.tasks.SlaMaintenanceService") as service_class:
            service_class.return_value.run.return_value = {"autoCompleted": 0, "slaBreachesDisputed": 0}

            run_sla_maintenance.apply(kwargs={"actor_user_id": "admin_1"})

        service_class.return_value.run.assert_called_once_with("admin_1")


@pytest.mark.django_db
class TestSlaMaintenanceSchedule:
    def test_interval_creates_enabled_task(self, settings):
        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 120

        task = sync_sla_maintenance_schedule()

        assert task.name == SLA_MAINTENANCE_SCHEDULE_NAME
        assert task.task == SLA_MAINTENANCE_TASK
        assert task.enabled is True
        assert task.interval.every == 120
        assert task.interval.period == IntervalSchedule.SECONDS

    def test_zero_disables_existing_task(self, settings):
        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 300
        sync_sla_maintenance_schedule()

        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 0
        sync_sla_maintenance_schedule()

        assert PeriodicTask.objects.get(name=SLA_MAINTENANCE_SCHEDULE_NAME).enabled is False

    def test_zero_without_task_creates_nothing(self, settings):
        PeriodicTask.objects.filter(name=SLA_MAINTENANCE_SCHEDULE_NAME).delete()
        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 0

        assert sync_sla_maintenance_schedule() is None
        assert not PeriodicTask.objects.filter(name=SLA_MAINTENANCE_SCHEDULE_NAME).exists()

    def test_new_interval_re_enables(self, settings):
        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 0
        sync_sla_maintenance_schedule()

        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 60
        sync_sla_maintenance_schedule()

        task = PeriodicTask.objects.get(name=SLA_MAINTENANCE_SCHEDULE_NAME)
        assert task.enabled is True
        assert task.interval.every == 60

    def test_synced_after_migrate(self, settings):
        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 300
        sync_sla_maintenance_schedule()
        settings.COVERAGE_SLA_MAINTENANCE_SECONDS = 0
        app_config = apps.get_app_config("marketplace")

        post_migrate.send(
            sender=app_config,
            app_config=app_config,
            verbosity=0,
            interactive=False,
            using="default",
            apps=apps,
            plan=[],
        )

        assert PeriodicTask.objects.get(name=SLA_MAINTENANCE_SCHEDULE_NAME).enabled is False
