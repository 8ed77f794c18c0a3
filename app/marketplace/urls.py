"""
URL configuration for the coverage app.

All routes are prefixed with /api/v1/coverage/ when included in the main
URLconf (see marketplace/views.py for the endpoint list).
"""

from django.urls import path

from marketplace import views
from marketplace.webhooks.views import stripe_webhook

app_name = "coverage"

urlpatterns = [
    # Providers
    path("providers/", views.ProviderListCreateView.as_view(), name="provider-list"),
    path("providers/<uuid:provider_id>/", views.ProviderDetailView.as_view(), name="provider-detail"),
    path(
        "providers/<uuid:provider_id>/onboarding-link/",
        views.ProviderOnboardingLinkView.as_view(),
        name="provider-onboarding-link",
    ),
    path(
        "providers/<uuid:provider_id>/services/",
        views.ProviderServicesView.as_view(),
        name="provider-services",
    ),
    path(
        "providers/<uuid:provider_id>/reviews/",
        views.ProviderReviewsView.as_view(),
        name="provider-reviews",
    ),
    path(
        "providers/<uuid:provider_id>/earnings-statement/",
        views.EarningsStatementView.as_view(),
        name="provider-earnings-statement",
    ),
    # Catalog
    path("services/", views.ServiceListView.as_view(), name="service-list"),
    path("services/<uuid:service_id>/", views.ServiceDetailView.as_view(), name="service-detail"),
    # Orders
    path("orders/", views.OrderListCreateView.as_view(), name="order-list"),
    path("orders/<uuid:order_id>/", views.OrderDetailView.as_view(), name="order-detail"),
    path("orders/<uuid:order_id>/claim/", views.OrderClaimView.as_view(), name="order-claim"),
    path("orders/<uuid:order_id>/deliver/", views.OrderDeliverView.as_view(), name="order-deliver"),
    path("orders/<uuid:order_id>/complete/", views.OrderCompleteView.as_view(), name="order-complete"),
    path("orders/<uuid:order_id>/cancel/", views.OrderCancelView.as_view(), name="order-cancel"),
    path("orders/<uuid:order_id>/delivery/", views.OrderDeliveryView.as_view(), name="order-delivery"),
    path(
        "orders/<uuid:order_id>/delivery/upload-url/",
        views.OrderDeliveryUploadUrlView.as_view(),
        name="order-delivery-upload-url",
    ),
    path("orders/<uuid:order_id>/review/", views.OrderReviewView.as_view(), name="order-review"),
    path("orders/<uuid:order_id>/dispute/", views.OrderDisputeView.as_view(), name="order-dispute"),
    # Disputes
    path("disputes/", views.DisputeListView.as_view(), name="dispute-list"),
    path("disputes/<uuid:dispute_id>/", views.DisputeDetailView.as_view(), name="dispute-detail"),
    path(
        "disputes/<uuid:dispute_id>/events/",
        views.DisputeEventsView.as_view(),
        name="dispute-events",
    ),
    # Admin
    path(
        "admin/providers/review-queue/",
        views.ProviderReviewQueueView.as_view(),
        name="admin-provider-review-queue",
    ),
    path(
        "admin/providers/<uuid:provider_id>/review/",
        views.ProviderAdminReviewView.as_view(),
        name="admin-provider-review",
    ),
    path("admin/payout-ledger/", views.PayoutLedgerView.as_view(), name="admin-payout-ledger"),
    # Jobs
    path("jobs/sla-maintenance/", views.SlaMaintenanceView.as_view(), name="job-sla-maintenance"),
    # Webhooks
    path("stripe-webhook/", stripe_webhook, name="stripe-webhook"),
]
