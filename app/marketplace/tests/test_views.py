"""
API tests for the coverage endpoints.

These cover HTTP concerns: authentication, status codes, the error envelope,
payload validation and response shapes. Business rules are covered by the
service tests.
"""

from datetime import datetime, timezone as dt_timezone

import pytest
from django.urls import reverse
from rest_framework import status

from marketplace.models import Dispute, Order, Provider, Service
from marketplace.state_machines import DisputeStatus, OrderStatus, ProviderStatus
from marketplace.tests.conftest import ADMIN_USER_ID
from marketplace.tests.factories import OrderFactory, ProviderFactory, ServiceFactory


# =============================================================================
# Authentication & Error Envelope
# =============================================================================


@pytest.mark.django_db
class TestAuthentication:
    def test_missing_identity_is_401(self, anonymous_client):
        response = anonymous_client.get(reverse("coverage:order-list"))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error_code"] == "not_authenticated"
        assert response["WWW-Authenticate"] == "X-Auth-User-Id"

    def test_blank_identity_is_401(self, client_for):
        response = client_for("   ").get(reverse("coverage:service-list"))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_admin_routes_reject_other_users(self, client_for):
        response = client_for("writer_1").get(reverse("coverage:dispute-list"))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error_code"] == "forbidden"

    def test_empty_admin_list_allows_any_caller(self, client_for, settings):
        settings.COVERAGE_ADMIN_USER_IDS = []

        response = client_for("writer_1").get(reverse("coverage:dispute-list"))

        assert response.status_code == status.HTTP_200_OK

    def test_domain_error_envelope(self, client_for):
        response = client_for("writer_1").get(
            reverse("coverage:order-detail", args=["00000000-0000-0000-0000-000000000000"])
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {
            "error": "Order not found",
            "error_code": "order_not_found",
            "details": {"order_id": "00000000-0000-0000-0000-000000000000"},
        }


# =============================================================================
# Providers
# =============================================================================


@pytest.mark.django_db
class TestProviderEndpoints:
    def test_register(self, client_for):
        response = client_for("user_42").post(
            reverse("coverage:provider-list"),
            {"display_name": "Ada", "specialties": ["horror"]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["provider"]["user_id"] == "user_42"
        assert body["provider"]["status"] == ProviderStatus.PENDING_VERIFICATION
        assert body["onboardingUrl"] == f"https://connect.stripe.com/setup/{body['provider']['stripe_account_id']}"

    def test_register_twice_is_409(self, provider_client):
        response = provider_client.post(
            reverse("coverage:provider-list"),
            {"display_name": "Again"},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error_code"] == "provider_already_exists"

    def test_register_requires_display_name(self, client_for):
        response = client_for("user_42").post(reverse("coverage:provider-list"), {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error_code"] == "validation_error"
        assert "display_name" in body["details"]

    def test_list_filters(self, client_for, provider):
        ProviderFactory(status=ProviderStatus.SUSPENDED, specialties=["comedy"])

        response = client_for("anyone").get(reverse("coverage:provider-list"), {"status": "active"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["count"] == 1
        assert body["results"][0]["id"] == str(provider.id)

        response = client_for("anyone").get(reverse("coverage:provider-list"), {"specialty": "comedy"})
        assert response.json()["count"] == 1

    def test_update_own_profile(self, provider_client, provider):
        response = provider_client.patch(
            reverse("coverage:provider-detail", args=[provider.id]),
            {"bio": "Twenty years at a studio"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["bio"] == "Twenty years at a studio"

    def test_update_someone_elses_profile(self, client_for, provider):
        response = client_for("stranger").patch(
            reverse("coverage:provider-detail", args=[provider.id]),
            {"bio": "x"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_onboarding_link(self, provider_client, provider):
        response = provider_client.get(reverse("coverage:provider-onboarding-link", args=[provider.id]))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"onboardingUrl": f"https://connect.stripe.com/setup/{provider.stripe_account_id}"}

    def test_admin_review_and_queue(self, admin_api_client):
        pending = ProviderFactory(status=ProviderStatus.PENDING_VERIFICATION)

        queue = admin_api_client.get(reverse("coverage:admin-provider-review-queue"))
        assert [p["id"] for p in queue.json()] == [str(pending.id)]
        assert queue.json()[0]["latest_review"] is None

        response = admin_api_client.post(
            reverse("coverage:admin-provider-review", args=[pending.id]),
            {"decision": "approved"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == ProviderStatus.ACTIVE

    def test_admin_review_bad_decision(self, admin_api_client, provider):
        response = admin_api_client.post(
            reverse("coverage:admin-provider-review", args=[provider.id]),
            {"decision": "promoted"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "validation_error"

    def test_admin_review_reason_required(self, admin_api_client, provider):
        response = admin_api_client.post(
            reverse("coverage:admin-provider-review", args=[provider.id]),
            {"decision": "suspended"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "reason_required"
        assert Provider.objects.get(pk=provider.pk).status == ProviderStatus.ACTIVE


# =============================================================================
# Catalog
# =============================================================================


@pytest.mark.django_db
class TestServiceEndpoints:
    def test_publish_service(self, provider_client, provider):
        response = provider_client.post(
            reverse("coverage:provider-services", args=[provider.id]),
            {
                "title": "Feature coverage",
                "tier": "competition_ready",
                "price_cents": 30000,
                "currency": "USD",
                "turnaround_days": 10,
                "max_pages": 130,
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["provider_id"] == str(provider.id)
        assert body["currency"] == "usd"
        assert body["active"] is True

    def test_publish_rejects_bad_price(self, provider_client, provider):
        response = provider_client.post(
            reverse("coverage:provider-services", args=[provider.id]),
            {"title": "Free", "tier": "concept_notes", "price_cents": 0, "turnaround_days": 1, "max_pages": 10},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "price_cents" in response.json()["details"]

    def test_catalog_filters(self, client_for, service):
        ServiceFactory(price_cents=5000, provider=service.provider)
        ServiceFactory(active=False)

        response = client_for("writer_1").get(reverse("coverage:service-list"), {"min_price": 10000})

        body = response.json()
        assert body["count"] == 1
        assert body["results"][0]["id"] == str(service.id)

    def test_delist_service(self, provider_client, service):
        response = provider_client.patch(
            reverse("coverage:service-detail", args=[service.id]),
            {"active": False},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert Service.objects.get(pk=service.pk).active is False


# =============================================================================
# Orders
# =============================================================================


@pytest.mark.django_db
class TestOrderEndpoints:
    def test_place_order(self, client_for, gateway, service):
        response = client_for("writer_1").post(
            reverse("coverage:order-list"),
            {"service_id": str(service.id), "script_id": "script_1"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["order"]["status"] == OrderStatus.PLACED
        assert body["order"]["price_cents"] == 15000
        assert body["order"]["platform_fee_cents"] == 2250
        assert body["order"]["provider_payout_cents"] == 12750
        assert body["clientSecret"] == f"{body['order']['stripe_payment_intent_id']}_secret"

    def test_place_order_bad_service_id(self, client_for):
        response = client_for("writer_1").post(
            reverse("coverage:order-list"),
            {"service_id": "not-a-uuid"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "validation_error"

    def test_list_is_scoped_to_caller(self, client_for, payment_held_order):
        OrderFactory()

        response = client_for(payment_held_order.writer_user_id).get(reverse("coverage:order-list"))

        assert [o["id"] for o in response.json()["results"]] == [str(payment_held_order.id)]

    def test_full_lifecycle(self, client_for, gateway, payment_held_order, provider):
        provider_api = client_for(provider.user_id)
        writer_api = client_for(payment_held_order.writer_user_id)

        response = provider_api.post(reverse("coverage:order-claim", args=[payment_held_order.id]))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == OrderStatus.CLAIMED
        assert response.json()["sla_deadline"] is not None

        response = provider_api.post(
            reverse("coverage:order-deliver", args=[payment_held_order.id]),
            {"summary": "Solid draft", "score": 74},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["score"] == 74

        response = writer_api.get(reverse("coverage:order-delivery", args=[payment_held_order.id]))
        assert response.json()["summary"] == "Solid draft"

        response = writer_api.post(reverse("coverage:order-complete", args=[payment_held_order.id]))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == OrderStatus.COMPLETED
        assert response.json()["stripe_transfer_id"] == gateway.transfers[0]["id"]

        response = writer_api.post(
            reverse("coverage:order-review", args=[payment_held_order.id]),
            {"rating": 5, "comment": "Worth it"},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED

        response = writer_api.get(reverse("coverage:provider-reviews", args=[provider.id]))
        assert response.json()["count"] == 1

    def test_claim_twice_is_409(self, provider_client, claimed_order):
        response = provider_client.post(reverse("coverage:order-claim", args=[claimed_order.id]))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error_code"] == "order_not_claimable"

    def test_writer_cannot_claim(self, client_for, payment_held_order):
        response = client_for(payment_held_order.writer_user_id).post(
            reverse("coverage:order-claim", args=[payment_held_order.id])
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_deliver_rejects_bad_score(self, provider_client, claimed_order):
        response = provider_client.post(
            reverse("coverage:order-deliver", args=[claimed_order.id]),
            {"summary": "x", "score": 101},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Order.objects.get(pk=claimed_order.pk).status == OrderStatus.CLAIMED

    def test_cancel(self, client_for, gateway, payment_held_order):
        response = client_for(payment_held_order.writer_user_id).post(
            reverse("coverage:order-cancel", args=[payment_held_order.id])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == OrderStatus.CANCELLED
        assert len(gateway.refunds) == 1

    def test_review_rating_out_of_range(self, client_for, delivered_order):
        response = client_for(delivered_order.writer_user_id).post(
            reverse("coverage:order-review", args=[delivered_order.id]),
            {"rating": 9},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "invalid_rating"

    def test_upload_url(self, provider_client, claimed_order):
        response = provider_client.get(reverse("coverage:order-delivery-upload-url", args=[claimed_order.id]))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["method"] == "POST"
        assert body["uploadFields"]["key"].endswith("-coverage-report.pdf")

    def test_gateway_error_is_502(self, client_for, gateway, delivered_order):
        from marketplace.exceptions import PaymentGatewayUnavailableError

        gateway.fail_next("capture_payment", PaymentGatewayUnavailableError("Stripe is down"))

        response = client_for(delivered_order.writer_user_id).post(
            reverse("coverage:order-complete", args=[delivered_order.id])
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["error_code"] == "payment_gateway_error"
        assert Order.objects.get(pk=delivered_order.pk).status == OrderStatus.DELIVERED


# =============================================================================
# Disputes
# =============================================================================


@pytest.mark.django_db
class TestDisputeEndpoints:
    def test_open_dispute(self, client_for, delivered_order):
        response = client_for(delivered_order.writer_user_id).post(
            reverse("coverage:order-dispute", args=[delivered_order.id]),
            {"reason": "quality", "description": "Generic notes"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["status"] == DisputeStatus.OPEN
        assert Order.objects.get(pk=delivered_order.pk).status == OrderStatus.DISPUTED

    def test_open_dispute_bad_reason(self, client_for, delivered_order):
        response = client_for(delivered_order.writer_user_id).post(
            reverse("coverage:order-dispute", args=[delivered_order.id]),
            {"reason": "vibes"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "validation_error"

    def test_triage_then_partial_refund(self, admin_api_client, gateway, open_dispute):
        url = reverse("coverage:dispute-detail", args=[open_dispute.id])

        response = admin_api_client.patch(url, {"status": "under_review"}, format="json")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == DisputeStatus.UNDER_REVIEW

        response = admin_api_client.patch(
            url,
            {"status": "resolved_partial", "refund_amount_cents": 4000, "admin_notes": "Split"},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == DisputeStatus.RESOLVED_PARTIAL
        assert response.json()["resolved_by_user_id"] == ADMIN_USER_ID
        assert gateway.refunds[0]["amount_cents"] == 4000

        events = admin_api_client.get(reverse("coverage:dispute-events", args=[open_dispute.id])).json()
        assert sorted(event["event_type"] for event in events) == ["resolved", "under_review"]

    def test_partial_without_amount_is_400(self, admin_api_client, open_dispute):
        response = admin_api_client.patch(
            reverse("coverage:dispute-detail", args=[open_dispute.id]),
            {"status": "resolved_partial"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "refund_amount_required_for_partial"
        assert Dispute.objects.get(pk=open_dispute.pk).status == DisputeStatus.OPEN

    def test_list_filter_by_status(self, admin_api_client, open_dispute):
        response = admin_api_client.get(reverse("coverage:dispute-list"), {"status": "open"})

        assert [d["id"] for d in response.json()["results"]] == [str(open_dispute.id)]


# =============================================================================
# Reports & Jobs
# =============================================================================


@pytest.mark.django_db
class TestReportEndpoints:
    @pytest.fixture
    def settled_order(self, service):
        order = OrderFactory(service=service)
        Order.objects.filter(pk=order.pk).update(
            status=OrderStatus.COMPLETED,
            stripe_transfer_id="tr_1",
            updated_at=datetime(2026, 3, 10, 12, 0, tzinfo=dt_timezone.utc),
        )
        return order

    def test_earnings_statement_json(self, provider_client, provider, settled_order):
        response = provider_client.get(
            reverse("coverage:provider-earnings-statement", args=[provider.id]),
            {"month": "2026-03"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["summary"]["providerPayoutCents"] == 12750

    def test_earnings_statement_csv(self, provider_client, provider, settled_order):
        response = provider_client.get(
            reverse("coverage:provider-earnings-statement", args=[provider.id]),
            {"month": "2026-03", "format": "csv"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response["Content-Type"] == "text/csv; charset=utf-8"
        lines = response.content.decode().splitlines()
        assert lines[0].startswith("order_id,status,updated_at")
        assert lines[1] == f"{settled_order.id},completed,2026-03-10T12:00:00Z,15000,2250,12750,tr_1"

    def test_invalid_month(self, provider_client, provider):
        response = provider_client.get(
            reverse("coverage:provider-earnings-statement", args=[provider.id]),
            {"month": "March"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "invalid_month"

    def test_empty_month_is_invalid(self, provider_client, provider):
        response = provider_client.get(
            reverse("coverage:provider-earnings-statement", args=[provider.id]),
            {"month": ""},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "invalid_month"

    def test_ledger_is_admin_only(self, provider_client):
        response = provider_client.get(reverse("coverage:admin-payout-ledger"))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_ledger_csv(self, admin_api_client, settled_order):
        response = admin_api_client.get(
            reverse("coverage:admin-payout-ledger"),
            {"month": "2026-03", "format": "csv"},
        )

        assert response["Content-Type"] == "text/csv; charset=utf-8"
        assert len(response.content.decode().splitlines()) == 2

    def test_sla_maintenance_job(self, admin_api_client, stale_delivered_order, breached_order):
        response = admin_api_client.post(reverse("coverage:job-sla-maintenance"))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"autoCompleted": 1, "slaBreachesDisputed": 1}
        assert Dispute.objects.get(order=breached_order).opened_by_user_id == ADMIN_USER_ID
