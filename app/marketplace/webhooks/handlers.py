"""
Webhook event handlers for payment processor events.

Handlers are registered per event type and receive the verified event dict.
Each handler is guarded by the state preconditions of the operation it
drives, so redelivered events are harmless.

Handled Events:
    payment_intent.amount_capturable_updated: Escrow hold acquired
    account.updated: Provider connect account onboarding progress

Unknown events are acknowledged and ignored.

Usage:
    from marketplace.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("charge.refunded")
    def handle_charge_refunded(event: dict) -> ServiceResult:
        ...

    result = dispatch_webhook(event)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from core.services import ServiceResult

from marketplace.gateways import AccountStatus, get_payment_gateway
from marketplace.models import Provider
from marketplace.services.orders import OrderService
from marketplace.services.providers import ProviderRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[dict[str, Any]], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The processor event type (e.g., "account.updated")
    """

    def decorator(func: Callable[[dict[str, Any]], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(event: dict[str, Any]) -> ServiceResult:
    """
    Dispatch a verified event to its handler.

    Returns:
        ServiceResult from the handler, or success(None) if no handler
    """
    event_type = event.get("type", "")
    handler = WEBHOOK_HANDLERS.get(event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {event_type}",
            extra={"stripe_event_id": event.get("id")},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {event_type} to handler",
        extra={"stripe_event_id": event.get("id")},
    )
    return handler(event)


def _event_object(event: dict[str, Any]) -> dict[str, Any]:
    return (event.get("data") or {}).get("object") or {}


def _flag(data: dict[str, Any], snake: str, camel: str) -> bool | None:
    value = data.get(snake, data.get(camel))
    return None if value is None else bool(value)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.amount_capturable_updated")
def handle_amount_capturable_updated(event: dict[str, Any]) -> ServiceResult:
    """
    The writer's card is authorised; move the order PLACED -> PAYMENT_HELD.
    """
    intent_id = _event_object(event).get("id")
    if not intent_id:
        logger.error(
            "amount_capturable_updated: Could not extract payment_intent_id",
            extra={"stripe_event_id": event.get("id")},
        )
        return ServiceResult.failure(
            "Could not extract payment_intent_id from webhook",
            error_code="invalid_webhook_payload",
        )

    order = OrderService(gateway=get_payment_gateway()).mark_payment_held(intent_id)
    if order is None:
        logger.warning(
            "No order for payment intent",
            extra={"payment_intent_id": intent_id, "stripe_event_id": event.get("id")},
        )
        return ServiceResult.failure("Unknown payment intent", error_code="order_not_found")

    return ServiceResult.success({"order_id": str(order.id), "status": order.status})


# =============================================================================
# Connect Account Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(event: dict[str, Any]) -> ServiceResult:
    """
    Record onboarding progress of a provider's connect account.

    Flags are taken from the payload when both are present, otherwise the
    account is queried. The onboarding flag is always written; status only
    moves PENDING_VERIFICATION -> ACTIVE.
    """
    account = _event_object(event)
    account_id = account.get("id")
    provider = Provider.objects.filter(stripe_account_id=account_id).first() if account_id else None
    if provider is None:
        logger.info(
            "account.updated for unknown account",
            extra={"account_id": account_id, "stripe_event_id": event.get("id")},
        )
        return ServiceResult.failure("Unknown connect account", error_code="provider_not_found")

    gateway = get_payment_gateway()
    chargeable = _flag(account, "charges_enabled", "chargesEnabled")
    payable = _flag(account, "payouts_enabled", "payoutsEnabled")
    if chargeable is None or payable is None:
        status = gateway.get_account_status(account_id)
    else:
        status = AccountStatus(chargeable=chargeable, payable=payable)

    provider = ProviderRegistry(gateway=gateway).record_account_status(provider, status)
    return ServiceResult.success(
        {
            "provider_id": str(provider.id),
            "status": provider.status,
            "onboarding_complete": provider.stripe_onboarding_complete,
        }
    )
