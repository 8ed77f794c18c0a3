"""
Service catalog: offerings published by active providers.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from django.core.exceptions import ValidationError as DjangoValidationError

from core.exceptions import NotFoundError, PermissionDeniedError
from core.services import BaseService

from marketplace.models import Service
from marketplace.services.providers import get_provider, require_provider_owner
from marketplace.state_machines import ProviderStatus

if TYPE_CHECKING:
    from django.db.models import QuerySet

SERVICE_FIELDS = (
    "title",
    "description",
    "tier",
    "price_cents",
    "currency",
    "turnaround_days",
    "max_pages",
    "active",
)


def get_service(service_id: uuid.UUID | str) -> Service:
    try:
        return Service.objects.select_related("provider").get(pk=service_id)
    except (Service.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError(
            "Service not found",
            error_code="service_not_found",
            details={"service_id": str(service_id)},
        ) from None


class ServiceCatalog(BaseService):
    """Create, edit and list coverage services."""

    def create(self, provider_id: uuid.UUID | str, actor_user_id: str, data: dict[str, Any]) -> Service:
        """
        Publish a new, active service.

        Raises:
            NotFoundError: provider_not_found
            PermissionDeniedError: forbidden (not the owner) / provider_not_active
        """
        provider = get_provider(provider_id)
        require_provider_owner(provider, actor_user_id)
        if provider.status != ProviderStatus.ACTIVE:
            raise PermissionDeniedError(
                "Provider must be active to publish services",
                error_code="provider_not_active",
                details={"status": provider.status},
            )

        values = {name: data[name] for name in SERVICE_FIELDS if name in data}
        values["active"] = True
        service = Service.objects.create(provider=provider, **values)

        self.get_logger().info(
            "Service created",
            extra={
                "service_id": str(service.id),
                "provider_id": str(provider.id),
                "price_cents": service.price_cents,
            },
        )
        return service

    def update(self, service_id: uuid.UUID | str, actor_user_id: str, patch: dict[str, Any]) -> Service:
        """
        Apply a partial update. Placed orders keep their own price snapshot.

        Raises:
            NotFoundError: service_not_found
            PermissionDeniedError: Caller does not own the service
        """
        service = get_service(service_id)
        require_provider_owner(service.provider, actor_user_id)

        changed = [name for name in SERVICE_FIELDS if name in patch]
        if changed:
            for name in changed:
                setattr(service, name, patch[name])
            service.save(update_fields=[*changed, "updated_at"])
        return service

    def listed(self) -> QuerySet[Service]:
        """Active services of active providers."""
        return Service.objects.select_related("provider").filter(
            active=True,
            provider__status=ProviderStatus.ACTIVE,
        )

    def for_provider(self, provider_id: uuid.UUID | str) -> QuerySet[Service]:
        """
        All services of a provider, listed or not.

        Raises:
            NotFoundError: provider_not_found
        """
        provider = get_provider(provider_id)
        return Service.objects.select_related("provider").filter(provider=provider)
