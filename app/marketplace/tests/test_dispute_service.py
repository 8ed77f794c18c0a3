"""
Tests for DisputeService: opening, triage, resolution and the audit trail.
"""

import pytest

from core.exceptions import ConflictError, PermissionDeniedError, ValidationError
from marketplace.exceptions import InvalidStateTransitionError, PaymentGatewayUnavailableError
from marketplace.models import Dispute, DisputeEvent, Order
from marketplace.services import DisputeService
from marketplace.state_machines import DisputeEventType, DisputeStatus, OrderStatus
from marketplace.tests.factories import DisputeFactory, OrderFactory, ProviderFactory, ServiceFactory


@pytest.fixture
def dispute_service(gateway):
    return DisputeService(gateway=gateway)


def event_types(dispute):
    return list(dispute.events.order_by("created_at").values_list("event_type", flat=True))


# =============================================================================
# Opening
# =============================================================================


@pytest.mark.django_db
class TestOpenDispute:
    def test_open_freezes_order(self, dispute_service, delivered_order):
        dispute = dispute_service.open_dispute(
            delivered_order.id,
            delivered_order.writer_user_id,
            reason="quality",
            description="Notes ignore act three",
        )

        assert dispute.status == DisputeStatus.OPEN
        assert Order.objects.get(pk=delivered_order.pk).status == OrderStatus.DISPUTED
        event = dispute.events.get()
        assert event.event_type == DisputeEventType.OPENED
        assert event.actor_user_id == delivered_order.writer_user_id
        assert event.to_status == DisputeStatus.OPEN

    def test_second_dispute_is_rejected(self, dispute_service, open_dispute):
        order = open_dispute.order

        with pytest.raises(ConflictError) as exc_info:
            dispute_service.open_dispute(order.id, order.writer_user_id, reason="other")

        assert exc_info.value.error_code == "dispute_already_exists"
        assert order.disputes.count() == 1

    def test_only_delivered_orders(self, dispute_service, claimed_order):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            dispute_service.open_dispute(claimed_order.id, claimed_order.writer_user_id, reason="quality")

        assert exc_info.value.error_code == "order_not_disputable"
        assert not Dispute.objects.exists()

    def test_unknown_reason(self, dispute_service, delivered_order):
        with pytest.raises(ValidationError) as exc_info:
            dispute_service.open_dispute(delivered_order.id, delivered_order.writer_user_id, reason="vibes")

        assert exc_info.value.error_code == "invalid_reason"

    def test_provider_cannot_open(self, dispute_service, delivered_order, provider):
        with pytest.raises(PermissionDeniedError):
            dispute_service.open_dispute(delivered_order.id, provider.user_id, reason="quality")


# =============================================================================
# Triage
# =============================================================================


@pytest.mark.django_db
class TestStartReview:
    def test_start_review(self, dispute_service, open_dispute):
        dispute = dispute_service.start_review(open_dispute.id, "admin_1", admin_notes="Reading the PDF")

        assert dispute.status == DisputeStatus.UNDER_REVIEW
        event = dispute.events.get(event_type=DisputeEventType.UNDER_REVIEW)
        assert event.from_status == DisputeStatus.OPEN
        assert event.to_status == DisputeStatus.UNDER_REVIEW
        assert event.note == "Reading the PDF"

    def test_review_twice(self, dispute_service, open_dispute):
        dispute_service.start_review(open_dispute.id, "admin_1")

        with pytest.raises(ConflictError) as exc_info:
            dispute_service.start_review(open_dispute.id, "admin_1")

        assert exc_info.value.error_code == "dispute_not_reviewable"


# =============================================================================
# Resolution
# =============================================================================


@pytest.mark.django_db
class TestResolveDispute:
    def test_full_refund(self, dispute_service, gateway, open_dispute):
        order = open_dispute.order

        dispute = dispute_service.resolve_dispute(open_dispute.id, "admin_1", "resolved_refund")

        assert dispute.status == DisputeStatus.RESOLVED_REFUND
        assert dispute.refund_amount_cents == order.price_cents
        assert dispute.resolved_by_user_id == "admin_1"
        assert Order.objects.get(pk=order.pk).status == OrderStatus.REFUNDED
        assert len(gateway.refunds) == 1
        assert gateway.refunds[0]["intent_id"] == order.stripe_payment_intent_id
        assert gateway.refunds[0]["amount_cents"] is None
        assert gateway.transfers == []

    def test_partial_refund(self, dispute_service, gateway, open_dispute):
        dispute = dispute_service.resolve_dispute(
            open_dispute.id,
            "admin_1",
            "resolved_partial",
            admin_notes="Half the notes were usable",
            refund_amount_cents=5000,
        )

        assert dispute.refund_amount_cents == 5000
        assert dispute.admin_notes == "Half the notes were usable"
        assert gateway.refunds[0]["amount_cents"] == 5000
        assert Order.objects.get(pk=open_dispute.order_id).status == OrderStatus.REFUNDED

    def test_no_refund_pays_provider(self, dispute_service, gateway, open_dispute, provider):
        order = open_dispute.order

        dispute = dispute_service.resolve_dispute(open_dispute.id, "admin_1", "resolved_no_refund")

        assert dispute.status == DisputeStatus.RESOLVED_NO_REFUND
        assert dispute.refund_amount_cents is None
        stored = Order.objects.get(pk=order.pk)
        assert stored.status == OrderStatus.COMPLETED
        assert order.stripe_payment_intent_id in gateway.captured
        assert gateway.transfers[0]["amount_cents"] == 12750
        assert gateway.transfers[0]["account_id"] == provider.stripe_account_id
        assert stored.stripe_transfer_id == gateway.transfers[0]["id"]
        assert gateway.refunds == []

    def test_resolution_from_under_review(self, dispute_service, open_dispute):
        dispute_service.start_review(open_dispute.id, "admin_1")

        dispute = dispute_service.resolve_dispute(open_dispute.id, "admin_1", "resolved_refund")

        assert event_types(dispute)[-1] == DisputeEventType.RESOLVED
        resolved = dispute.events.get(event_type=DisputeEventType.RESOLVED)
        assert resolved.from_status == DisputeStatus.UNDER_REVIEW
        assert resolved.to_status == DisputeStatus.RESOLVED_REFUND

    def test_partial_without_amount(self, dispute_service, gateway, open_dispute):
        with pytest.raises(ValidationError) as exc_info:
            dispute_service.resolve_dispute(open_dispute.id, "admin_1", "resolved_partial")

        assert exc_info.value.error_code == "refund_amount_required_for_partial"
        assert Dispute.objects.get(pk=open_dispute.pk).status == DisputeStatus.OPEN
        assert gateway.refunds == []

    @pytest.mark.parametrize("amount", [0, 15001])
    def test_partial_amount_out_of_range(self, dispute_service, gateway, open_dispute, amount):
        with pytest.raises(ValidationError) as exc_info:
            dispute_service.resolve_dispute(
                open_dispute.id,
                "admin_1",
                "resolved_partial",
                refund_amount_cents=amount,
            )

        assert exc_info.value.error_code == "refund_amount_invalid"
        assert gateway.refunds == []

    def test_unknown_resolution(self, dispute_service, open_dispute):
        with pytest.raises(ValidationError) as exc_info:
            dispute_service.resolve_dispute(open_dispute.id, "admin_1", "under_review")

        assert exc_info.value.error_code == "invalid_resolution"

    def test_resolve_twice(self, dispute_service, gateway, open_dispute):
        dispute_service.resolve_dispute(open_dispute.id, "admin_1", "resolved_refund")

        with pytest.raises(ConflictError) as exc_info:
            dispute_service.resolve_dispute(open_dispute.id, "admin_1", "resolved_no_refund")

        assert exc_info.value.error_code == "dispute_not_resolvable"
        assert len(gateway.refunds) == 1
        assert gateway.transfers == []

    def test_gateway_failure_rolls_back_everything(self, dispute_service, gateway, open_dispute):
        gateway.fail_next("refund", PaymentGatewayUnavailableError("down"))

        with pytest.raises(PaymentGatewayUnavailableError):
            dispute_service.resolve_dispute(open_dispute.id, "admin_1", "resolved_refund")

        assert Dispute.objects.get(pk=open_dispute.pk).status == DisputeStatus.OPEN
        assert Order.objects.get(pk=open_dispute.order_id).status == OrderStatus.DISPUTED
        assert not DisputeEvent.objects.filter(event_type=DisputeEventType.RESOLVED).exists()

    def test_no_refund_without_payout_account(self, dispute_service, gateway):
        provider = ProviderFactory(stripe_account_id=None)
        order = OrderFactory(service=ServiceFactory(provider=provider), disputed=True)
        dispute = DisputeFactory(order=order)

        with pytest.raises(ValidationError) as exc_info:
            dispute_service.resolve_dispute(dispute.id, "admin_1", "resolved_no_refund")

        assert exc_info.value.error_code == "provider_stripe_not_configured"
        assert Dispute.objects.get(pk=dispute.pk).status == DisputeStatus.OPEN


# =============================================================================
# Queries
# =============================================================================


@pytest.mark.django_db
class TestDisputeQueries:
    def test_list_filters_by_status(self, dispute_service, open_dispute):
        resolved = DisputeFactory(status=DisputeStatus.RESOLVED_NO_REFUND)

        assert set(dispute_service.list_disputes()) == {open_dispute, resolved}
        assert list(dispute_service.list_disputes(status="open")) == [open_dispute]

    def test_list_events_covers_whole_history(self, dispute_service, delivered_order):
        dispute = dispute_service.open_dispute(delivered_order.id, delivered_order.writer_user_id, reason="quality")
        dispute_service.start_review(dispute.id, "admin_1")
        dispute_service.resolve_dispute(dispute.id, "admin_1", "resolved_refund")

        events = dispute_service.list_events(dispute.id)

        assert sorted(event.event_type for event in events) == sorted(
            [DisputeEventType.OPENED, DisputeEventType.UNDER_REVIEW, DisputeEventType.RESOLVED]
        )
