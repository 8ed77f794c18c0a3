"""
Tests for coverage model constraints and defaults.
"""

import pytest
from django.db import IntegrityError, transaction

from marketplace.exceptions import AuditTrailImmutableError
from marketplace.models import DisputeEvent, Order
from marketplace.state_machines import DisputeEventType, DisputeStatus
from marketplace.tests.factories import (
    DeliveryFactory,
    DisputeFactory,
    OrderFactory,
    ProviderFactory,
    ReviewFactory,
    ServiceFactory,
)


@pytest.mark.django_db
class TestProvider:
    def test_one_provider_per_user(self):
        ProviderFactory(user_id="user_1")

        with pytest.raises(IntegrityError):
            ProviderFactory(user_id="user_1")

    def test_has_payment_account(self):
        assert ProviderFactory().has_payment_account
        assert not ProviderFactory(stripe_account_id=None).has_payment_account

    def test_link_payment_account_resets_onboarding(self):
        provider = ProviderFactory()

        provider.link_payment_account("acct_new")

        assert provider.stripe_account_id == "acct_new"
        assert provider.stripe_onboarding_complete is False


@pytest.mark.django_db
class TestService:
    def test_str(self):
        service = ServiceFactory(title="Pilot notes", price_cents=4999)

        assert str(service).endswith("Pilot notes, 49.99 USD)")

    def test_price_must_be_positive(self):
        with pytest.raises(IntegrityError):
            ServiceFactory(price_cents=0)


@pytest.mark.django_db
class TestOrder:
    def test_price_split_is_enforced(self):
        with pytest.raises(IntegrityError):
            OrderFactory(price_cents=15000, platform_fee_cents=2000, provider_payout_cents=12750)

    def test_save_increments_version(self):
        order = OrderFactory(script_id="s1")
        version = order.version

        order.script_id = "s2"
        order.save()

        assert order.version == version + 1
        assert Order.objects.get(pk=order.pk).version == version + 1

    def test_payment_intent_is_unique(self):
        OrderFactory(stripe_payment_intent_id="pi_dup")

        with pytest.raises(IntegrityError):
            OrderFactory(stripe_payment_intent_id="pi_dup")


@pytest.mark.django_db
class TestDeliveryAndReview:
    def test_one_delivery_per_order(self):
        delivery = DeliveryFactory()

        with pytest.raises(IntegrityError):
            DeliveryFactory(order=delivery.order)

    def test_delivery_score_range(self):
        with pytest.raises(IntegrityError):
            DeliveryFactory(score=101)

    def test_one_review_per_order(self):
        review = ReviewFactory()

        with pytest.raises(IntegrityError):
            ReviewFactory(order=review.order)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_review_rating_range(self, rating):
        with pytest.raises(IntegrityError):
            ReviewFactory(rating=rating)


@pytest.mark.django_db
class TestDispute:
    def test_one_active_dispute_per_order(self):
        dispute = DisputeFactory()

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                DisputeFactory(order=dispute.order, status=DisputeStatus.UNDER_REVIEW)

    def test_resolved_disputes_do_not_block_a_new_one(self):
        resolved = DisputeFactory(status=DisputeStatus.RESOLVED_NO_REFUND)

        DisputeFactory(order=resolved.order)

        assert resolved.order.disputes.count() == 2


@pytest.mark.django_db
class TestDisputeEvent:
    @pytest.fixture
    def event(self):
        dispute = DisputeFactory()
        return DisputeEvent.objects.create(
            dispute=dispute,
            actor_user_id="writer_1",
            event_type=DisputeEventType.OPENED,
            to_status=DisputeStatus.OPEN,
        )

    def test_event_cannot_be_updated(self, event):
        event.note = "rewritten"

        with pytest.raises(AuditTrailImmutableError):
            event.save()

    def test_event_cannot_be_deleted(self, event):
        with pytest.raises(AuditTrailImmutableError):
            event.delete()

    def test_queryset_update_and_delete_are_refused(self, event):
        with pytest.raises(AuditTrailImmutableError):
            DisputeEvent.objects.filter(pk=event.pk).update(note="x")
        with pytest.raises(AuditTrailImmutableError):
            DisputeEvent.objects.filter(pk=event.pk).delete()

        assert DisputeEvent.objects.get(pk=event.pk).note == ""

