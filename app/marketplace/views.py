"""
DRF views for the coverage marketplace.

Views validate the payload, call the service layer with the caller's id
(request.user.id, from X-Auth-User-Id) and serialize the result. Domain
errors raised by services propagate to core.exception_handler, which renders
the {"error", "error_code", "details"} envelope; views never translate them.

Related files:
    - services/: ProviderRegistry, ServiceCatalog, OrderService,
      DisputeService, SlaMaintenanceService, ReportService
    - serializers.py: Request/response serializers
    - filters.py: List filters
    - urls.py: URL routing

Endpoints (under /api/v1/coverage/):
    Providers:
        POST/GET   providers/
        GET/PATCH  providers/{id}/
        GET        providers/{id}/onboarding-link/
        POST/GET   providers/{id}/services/
        GET        providers/{id}/reviews/
        GET        providers/{id}/earnings-statement/

    Catalog:
        GET        services/
        PATCH      services/{id}/

    Orders:
        POST/GET   orders/
        GET        orders/{id}/
        POST       orders/{id}/claim|deliver|complete|cancel/
        GET        orders/{id}/delivery/
        GET        orders/{id}/delivery/upload-url/
        POST       orders/{id}/review/
        POST       orders/{id}/dispute/

    Admin:
        GET        disputes/
        PATCH      disputes/{id}/
        GET        disputes/{id}/events/
        GET        admin/providers/review-queue/
        POST       admin/providers/{id}/review/
        GET        admin/payout-ledger/
        POST       jobs/sla-maintenance/
"""

from __future__ import annotations

import logging

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.renderers import BaseRenderer, JSONRenderer
from rest_framework.response import Response
from rest_framework.views import APIView

from marketplace.filters import DisputeFilter, OrderFilter, ProviderFilter, ServiceFilter
from marketplace.gateways import get_payment_gateway
from marketplace.permissions import IsCoverageAdmin
from marketplace.serializers import (
    DeliveryCreateSerializer,
    DeliverySerializer,
    DisputeCreateSerializer,
    DisputeEventSerializer,
    DisputeSerializer,
    DisputeUpdateSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    ProviderQueueSerializer,
    ProviderRegisterSerializer,
    ProviderReviewDecisionSerializer,
    ProviderSerializer,
    ProviderUpdateSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
    ServiceCreateSerializer,
    ServiceSerializer,
    ServiceUpdateSerializer,
)
from marketplace.services import (
    DisputeService,
    OrderService,
    ProviderRegistry,
    ReportService,
    ServiceCatalog,
    SlaMaintenanceService,
)
from marketplace.services.providers import get_provider
from marketplace.services.reports import (
    EARNINGS_CSV_COLUMNS,
    LEDGER_CSV_COLUMNS,
    parse_month,
    render_csv,
)
from marketplace.state_machines import DisputeStatus

logger = logging.getLogger(__name__)

MONTH_PARAMETER = OpenApiParameter(
    "month",
    OpenApiTypes.STR,
    description="Report month as YYYY-MM (default: current UTC month)",
)
FORMAT_PARAMETER = OpenApiParameter(
    "format",
    OpenApiTypes.STR,
    enum=["json", "csv"],
    description="csv returns text/csv with a header row",
)


class CSVRenderer(BaseRenderer):
    """
    Renders pre-built CSV text; selected with ?format=csv.

    Non-string payloads (error envelopes) fall back to JSON.
    """

    media_type = "text/csv"
    format = "csv"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if isinstance(data, str):
            return data.encode(self.charset)
        return JSONRenderer().render(data, accepted_media_type, renderer_context)


# =============================================================================
# Providers
# =============================================================================


class ProviderListCreateView(generics.GenericAPIView):
    """
    POST: register the caller as a provider.
    GET: list providers (filters: status, specialty).
    """

    serializer_class = ProviderSerializer
    filterset_class = ProviderFilter

    def get_queryset(self):
        return ProviderRegistry(gateway=get_payment_gateway()).listed()

    @extend_schema(
        operation_id="list_providers",
        summary="List providers",
        tags=["Coverage - Providers"],
    )
    def get(self, request):
        page = self.paginate_queryset(self.filter_queryset(self.get_queryset()))
        return self.get_paginated_response(ProviderSerializer(page, many=True).data)

    @extend_schema(
        operation_id="register_provider",
        summary="Register as a coverage provider",
        tags=["Coverage - Providers"],
        request=ProviderRegisterSerializer,
    )
    def post(self, request):
        serializer = ProviderRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        registration = ProviderRegistry(gateway=get_payment_gateway()).register(
            user_id=request.user.id,
            **serializer.validated_data,
        )
        return Response(
            {
                "provider": ProviderSerializer(registration.provider).data,
                "onboardingUrl": registration.onboarding_url,
            },
            status=status.HTTP_201_CREATED,
        )


class ProviderDetailView(APIView):
    @extend_schema(
        operation_id="get_provider",
        summary="Get provider",
        tags=["Coverage - Providers"],
        responses=ProviderSerializer,
    )
    def get(self, request, provider_id):
        return Response(ProviderSerializer(get_provider(provider_id)).data)

    @extend_schema(
        operation_id="update_provider",
        summary="Update own provider profile",
        tags=["Coverage - Providers"],
        request=ProviderUpdateSerializer,
        responses=ProviderSerializer,
    )
    def patch(self, request, provider_id):
        serializer = ProviderUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        provider = ProviderRegistry(gateway=get_payment_gateway()).update(
            provider_id,
            request.user.id,
            serializer.validated_data,
        )
        return Response(ProviderSerializer(provider).data)


class ProviderOnboardingLinkView(APIView):
    @extend_schema(
        operation_id="get_provider_onboarding_link",
        summary="Issue a fresh payment onboarding link",
        tags=["Coverage - Providers"],
    )
    def get(self, request, provider_id):
        url = ProviderRegistry(gateway=get_payment_gateway()).onboarding_link(
            provider_id,
            request.user.id,
        )
        return Response({"onboardingUrl": url})


class ProviderReviewQueueView(APIView):
    """Providers awaiting verification, oldest first."""

    permission_classes = [IsAuthenticated, IsCoverageAdmin]

    @extend_schema(
        operation_id="provider_review_queue",
        summary="List providers awaiting verification",
        tags=["Coverage - Admin"],
        responses=ProviderQueueSerializer(many=True),
    )
    def get(self, request):
        providers = ProviderRegistry(gateway=get_payment_gateway()).review_queue()
        return Response(ProviderQueueSerializer(providers, many=True).data)


class ProviderAdminReviewView(APIView):
    permission_classes = [IsAuthenticated, IsCoverageAdmin]

    @extend_schema(
        operation_id="review_provider",
        summary="Record an admin decision on a provider",
        tags=["Coverage - Admin"],
        request=ProviderReviewDecisionSerializer,
        responses=ProviderSerializer,
    )
    def post(self, request, provider_id):
        serializer = ProviderReviewDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        provider = ProviderRegistry(gateway=get_payment_gateway()).admin_review(
            provider_id,
            reviewer_user_id=request.user.id,
            **serializer.validated_data,
        )
        return Response(ProviderSerializer(provider).data)


# =============================================================================
# Catalog
# =============================================================================


class ProviderServicesView(generics.GenericAPIView):
    """
    POST: publish a service (owner, active provider).
    GET: all services of the provider, listed or not.
    """

    serializer_class = ServiceSerializer

    def get_queryset(self):
        return ServiceCatalog().for_provider(self.kwargs["provider_id"])

    @extend_schema(
        operation_id="list_provider_services",
        summary="List a provider's services",
        tags=["Coverage - Services"],
    )
    def get(self, request, provider_id):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(ServiceSerializer(page, many=True).data)

    @extend_schema(
        operation_id="create_service",
        summary="Publish a coverage service",
        tags=["Coverage - Services"],
        request=ServiceCreateSerializer,
        responses={201: ServiceSerializer},
    )
    def post(self, request, provider_id):
        serializer = ServiceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = ServiceCatalog().create(provider_id, request.user.id, serializer.validated_data)
        return Response(ServiceSerializer(service).data, status=status.HTTP_201_CREATED)


class ServiceListView(generics.ListAPIView):
    """Public catalog: active services of active providers."""

    serializer_class = ServiceSerializer
    filterset_class = ServiceFilter

    def get_queryset(self):
        return ServiceCatalog().listed()

    @extend_schema(
        operation_id="list_services",
        summary="Browse the service catalog",
        tags=["Coverage - Services"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class ServiceDetailView(APIView):
    @extend_schema(
        operation_id="update_service",
        summary="Update own service",
        tags=["Coverage - Services"],
        request=ServiceUpdateSerializer,
        responses=ServiceSerializer,
    )
    def patch(self, request, service_id):
        serializer = ServiceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = ServiceCatalog().update(service_id, request.user.id, serializer.validated_data)
        return Response(ServiceSerializer(service).data)


# =============================================================================
# Orders
# =============================================================================


class OrderListCreateView(generics.GenericAPIView):
    """
    POST: place an order; returns the client secret for card confirmation.
    GET: orders the caller placed or is providing.
    """

    serializer_class = OrderSerializer
    filterset_class = OrderFilter

    def get_queryset(self):
        return OrderService(gateway=get_payment_gateway()).list_for_actor(self.request.user.id)

    @extend_schema(
        operation_id="list_orders",
        summary="List the caller's orders",
        tags=["Coverage - Orders"],
    )
    def get(self, request):
        page = self.paginate_queryset(self.filter_queryset(self.get_queryset()))
        return self.get_paginated_response(OrderSerializer(page, many=True).data)

    @extend_schema(
        operation_id="place_order",
        summary="Place an order",
        tags=["Coverage - Orders"],
        request=OrderCreateSerializer,
    )
    def post(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        placed = OrderService(gateway=get_payment_gateway()).place(
            writer_user_id=request.user.id,
            **serializer.validated_data,
        )
        return Response(
            {
                "order": OrderSerializer(placed.order).data,
                "clientSecret": placed.client_secret,
            },
            status=status.HTTP_201_CREATED,
        )


class OrderDetailView(APIView):
    @extend_schema(
        operation_id="get_order",
        summary="Get order",
        tags=["Coverage - Orders"],
        responses=OrderSerializer,
    )
    def get(self, request, order_id):
        order = OrderService(gateway=get_payment_gateway()).get(order_id, request.user.id)
        return Response(OrderSerializer(order).data)


class OrderClaimView(APIView):
    @extend_schema(
        operation_id="claim_order",
        summary="Claim a paid order (provider)",
        tags=["Coverage - Orders"],
        request=None,
        responses=OrderSerializer,
    )
    def post(self, request, order_id):
        order = OrderService(gateway=get_payment_gateway()).claim(order_id, request.user.id)
        return Response(OrderSerializer(order).data)


class OrderDeliverView(APIView):
    @extend_schema(
        operation_id="deliver_order",
        summary="Deliver coverage (provider)",
        tags=["Coverage - Orders"],
        request=DeliveryCreateSerializer,
        responses=DeliverySerializer,
    )
    def post(self, request, order_id):
        serializer = DeliveryCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        delivery = OrderService(gateway=get_payment_gateway()).deliver(
            order_id,
            request.user.id,
            serializer.validated_data,
        )
        return Response(DeliverySerializer(delivery).data)


class OrderCompleteView(APIView):
    @extend_schema(
        operation_id="complete_order",
        summary="Accept the delivery and release the payout (writer)",
        tags=["Coverage - Orders"],
        request=None,
        responses=OrderSerializer,
    )
    def post(self, request, order_id):
        order = OrderService(gateway=get_payment_gateway()).complete(order_id, request.user.id)
        return Response(OrderSerializer(order).data)


class OrderCancelView(APIView):
    @extend_schema(
        operation_id="cancel_order",
        summary="Cancel an unclaimed order (writer)",
        tags=["Coverage - Orders"],
        request=None,
        responses=OrderSerializer,
    )
    def post(self, request, order_id):
        order = OrderService(gateway=get_payment_gateway()).cancel(order_id, request.user.id)
        return Response(OrderSerializer(order).data)


class OrderDeliveryView(APIView):
    @extend_schema(
        operation_id="get_order_delivery",
        summary="Get the delivered coverage",
        tags=["Coverage - Orders"],
        responses=DeliverySerializer,
    )
    def get(self, request, order_id):
        delivery = OrderService(gateway=get_payment_gateway()).get_delivery(order_id, request.user.id)
        return Response(DeliverySerializer(delivery).data)


class OrderDeliveryUploadUrlView(APIView):
    @extend_schema(
        operation_id="get_delivery_upload_url",
        summary="Get an upload form for the coverage report (provider)",
        tags=["Coverage - Orders"],
    )
    def get(self, request, order_id):
        upload = OrderService(gateway=get_payment_gateway()).delivery_upload_url(order_id, request.user.id)
        return Response(upload)


class OrderReviewView(APIView):
    @extend_schema(
        operation_id="review_order",
        summary="Rate a delivered order (writer)",
        tags=["Coverage - Reviews"],
        request=ReviewCreateSerializer,
        responses={201: ReviewSerializer},
    )
    def post(self, request, order_id):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = OrderService(gateway=get_payment_gateway()).submit_review(
            order_id,
            request.user.id,
            **serializer.validated_data,
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class ProviderReviewsView(generics.ListAPIView):
    serializer_class = ReviewSerializer

    def get_queryset(self):
        return OrderService(gateway=get_payment_gateway()).list_reviews(self.kwargs["provider_id"])

    @extend_schema(
        operation_id="list_provider_reviews",
        summary="List a provider's reviews",
        tags=["Coverage - Reviews"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


# =============================================================================
# Disputes
# =============================================================================


class OrderDisputeView(APIView):
    @extend_schema(
        operation_id="open_dispute",
        summary="Dispute a delivered order (writer)",
        tags=["Coverage - Disputes"],
        request=DisputeCreateSerializer,
        responses={201: DisputeSerializer},
    )
    def post(self, request, order_id):
        serializer = DisputeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dispute = DisputeService(gateway=get_payment_gateway()).open_dispute(
            order_id,
            request.user.id,
            **serializer.validated_data,
        )
        return Response(DisputeSerializer(dispute).data, status=status.HTTP_201_CREATED)


class DisputeListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, IsCoverageAdmin]
    serializer_class = DisputeSerializer
    filterset_class = DisputeFilter

    def get_queryset(self):
        return DisputeService(gateway=get_payment_gateway()).list_disputes()

    @extend_schema(
        operation_id="list_disputes",
        summary="List disputes",
        tags=["Coverage - Disputes"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class DisputeDetailView(APIView):
    """
    PATCH status=under_review: start triage.
    PATCH status=resolved_*: resolve and settle the order's escrow.
    """

    permission_classes = [IsAuthenticated, IsCoverageAdmin]

    @extend_schema(
        operation_id="update_dispute",
        summary="Triage or resolve a dispute",
        tags=["Coverage - Disputes"],
        request=DisputeUpdateSerializer,
        responses=DisputeSerializer,
    )
    def patch(self, request, dispute_id):
        serializer = DisputeUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = DisputeService(gateway=get_payment_gateway())
        if data["status"] == DisputeStatus.UNDER_REVIEW:
            dispute = service.start_review(
                dispute_id,
                request.user.id,
                admin_notes=data.get("admin_notes"),
            )
        else:
            dispute = service.resolve_dispute(
                dispute_id,
                request.user.id,
                data["status"],
                admin_notes=data.get("admin_notes"),
                refund_amount_cents=data.get("refund_amount_cents"),
            )
        return Response(DisputeSerializer(dispute).data)


class DisputeEventsView(APIView):
    permission_classes = [IsAuthenticated, IsCoverageAdmin]

    @extend_schema(
        operation_id="list_dispute_events",
        summary="Dispute audit trail",
        tags=["Coverage - Disputes"],
        responses=DisputeEventSerializer(many=True),
    )
    def get(self, request, dispute_id):
        events = DisputeService(gateway=get_payment_gateway()).list_events(dispute_id)
        return Response(DisputeEventSerializer(events, many=True).data)


# =============================================================================
# Reports & Jobs
# =============================================================================


class EarningsStatementView(APIView):
    renderer_classes = [JSONRenderer, CSVRenderer]

    @extend_schema(
        operation_id="provider_earnings_statement",
        summary="Monthly earnings statement (provider)",
        tags=["Coverage - Reports"],
        parameters=[MONTH_PARAMETER, FORMAT_PARAMETER],
    )
    def get(self, request, provider_id):
        month = parse_month(request.query_params.get("month"))
        report = ReportService().earnings_statement(provider_id, month, request.user.id)

        if request.accepted_renderer.format == CSVRenderer.format:
            return Response(render_csv(EARNINGS_CSV_COLUMNS, report["rows"]))
        return Response(report)


class PayoutLedgerView(APIView):
    permission_classes = [IsAuthenticated, IsCoverageAdmin]
    renderer_classes = [JSONRenderer, CSVRenderer]

    @extend_schema(
        operation_id="payout_ledger",
        summary="Monthly platform payout ledger",
        tags=["Coverage - Admin"],
        parameters=[MONTH_PARAMETER, FORMAT_PARAMETER],
    )
    def get(self, request):
        month = parse_month(request.query_params.get("month"))
        report = ReportService().payout_ledger(month)

        if request.accepted_renderer.format == CSVRenderer.format:
            return Response(render_csv(LEDGER_CSV_COLUMNS, report["rows"]))
        return Response(report)


class SlaMaintenanceView(APIView):
    """Run one SLA maintenance sweep synchronously as the caller."""

    permission_classes = [IsAuthenticated, IsCoverageAdmin]

    @extend_schema(
        operation_id="run_sla_maintenance",
        summary="Run SLA maintenance now",
        tags=["Coverage - Admin"],
        request=None,
    )
    def post(self, request):
        result = SlaMaintenanceService(gateway=get_payment_gateway()).run(request.user.id)
        logger.info(
            "Manual SLA maintenance run",
            extra={"actor_user_id": request.user.id, **result},
        )
        return Response(result)
