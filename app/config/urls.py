"""
URL configuration for the coverage marketplace service.

URL Structure:
    /                                   - ReDoc API documentation
    /schema/                            - OpenAPI schema
    /admin/                             - Django admin interface
    /health/, /health/live/, /health/ready/ - Health probes
    /api/v1/coverage/                   - Coverage marketplace endpoints
        providers/                      - Provider signup and listing
        providers/{id}/                 - Provider detail/update
        providers/{id}/onboarding-link/ - Payment onboarding link
        providers/{id}/services/        - Provider services (list/create)
        providers/{id}/reviews/         - Provider reviews
        providers/{id}/earnings-statement/ - Monthly earnings (JSON/CSV)
        services/                       - Public service catalog
        services/{id}/                  - Service update
        orders/                         - Place/list orders
        orders/{id}/                    - Order detail
        orders/{id}/claim|deliver|complete|cancel/ - Lifecycle actions
        orders/{id}/delivery/           - Delivered coverage
        orders/{id}/delivery/upload-url/ - Report upload form
        orders/{id}/review/             - Writer review
        orders/{id}/dispute/            - Open dispute
        disputes/                       - Dispute list
        disputes/{id}/                  - Dispute triage/resolution
        disputes/{id}/events/           - Dispute audit trail
        admin/providers/review-queue/   - Providers awaiting review
        admin/providers/{id}/review/    - Admin provider decision
        admin/payout-ledger/            - Platform payout ledger
        jobs/sla-maintenance/           - Manual SLA maintenance run
        stripe-webhook/                 - Stripe webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check, liveness_check, readiness_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("coverage/", include("marketplace.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health checks
    path("health/", health_check, name="health_check"),
    path("health/live/", liveness_check, name="health_live"),
    path("health/ready/", readiness_check, name="health_ready"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Coverage Marketplace Admin"
admin.site.site_title = "Coverage Admin"
admin.site.index_title = "Providers, orders and disputes"
