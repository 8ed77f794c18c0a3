"""
Webhook endpoint for the payment processor.

The view verifies the signature through the configured payment gateway and
processes the event synchronously. Handlers are idempotent (status
preconditions), so processor retries are safe.

Usage:
    # In urls.py
    from marketplace.webhooks.views import stripe_webhook

    urlpatterns = [
        path("stripe-webhook", stripe_webhook, name="stripe-webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from marketplace.exceptions import InvalidSignatureError
from marketplace.gateways import get_payment_gateway
from marketplace.webhooks.handlers import dispatch_webhook

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive, verify and process a webhook event.

    Returns:
        JsonResponse with status:
        - 200: {"received": true} (handled, ignored or no-op)
        - 400: missing_signature / invalid_signature
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return JsonResponse(
            {"error": "Missing Stripe-Signature header", "error_code": "missing_signature"},
            status=400,
        )

    try:
        event = get_payment_gateway().verify_webhook(payload, signature)
    except InvalidSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e)},
        )
        return JsonResponse(e.to_dict(), status=400)

    logger.info(
        f"Received Stripe webhook: {event.get('type')}",
        extra={"stripe_event_id": event.get("id"), "event_type": event.get("type")},
    )

    result = dispatch_webhook(event)
    if not result:
        logger.warning(
            "Webhook acknowledged without effect",
            extra={
                "stripe_event_id": event.get("id"),
                "event_type": event.get("type"),
                "error_code": result.error_code,
            },
        )

    return JsonResponse({"received": True})
