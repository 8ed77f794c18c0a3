"""
Provider registry: registration, payment onboarding and admin review.

Usage:
    from marketplace.gateways import get_payment_gateway
    from marketplace.services import ProviderRegistry

    registry = ProviderRegistry(gateway=get_payment_gateway())
    registration = registry.register("user_42", display_name="Ada")
    registration.onboarding_url  # hosted onboarding page

    registry.admin_review(provider.id, "approved", reviewer_user_id="admin_1")
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, connection
from django.db.models import Prefetch
from django_fsm import can_proceed

from core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService

from marketplace.models import Provider, ProviderReview
from marketplace.state_machines import ProviderReviewDecision, ProviderStatus

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from marketplace.gateways import AccountStatus, PaymentGateway

# Profile fields a provider may change on itself
EDITABLE_PROFILE_FIELDS = ("display_name", "bio", "specialties")

REVIEW_QUEUE_LIMIT = 100


@dataclass(frozen=True)
class ProviderRegistration:
    provider: Provider
    onboarding_url: str


def get_provider(provider_id: uuid.UUID | str) -> Provider:
    """
    Raises:
        NotFoundError: provider_not_found
    """
    try:
        return Provider.objects.get(pk=provider_id)
    except (Provider.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError(
            "Provider not found",
            error_code="provider_not_found",
            details={"provider_id": str(provider_id)},
        ) from None


def require_provider_owner(provider: Provider, actor_user_id: str) -> None:
    """
    Raises:
        PermissionDeniedError: Caller does not own the provider profile
    """
    if provider.user_id != actor_user_id:
        raise PermissionDeniedError(
            "Only the provider may perform this action",
            details={"provider_id": str(provider.id)},
        )


def filter_by_specialty(queryset: QuerySet[Provider], specialty: str) -> QuerySet[Provider]:
    """Providers whose specialties list contains `specialty`."""
    if connection.features.supports_json_field_contains:
        return queryset.filter(specialties__contains=[specialty])
    matching = [
        provider_id
        for provider_id, specialties in queryset.values_list("id", "specialties")
        if specialty in (specialties or [])
    ]
    return queryset.filter(id__in=matching)


class ProviderRegistry(BaseService):
    """
    Provider lifecycle operations.

    Provider status moves only through:
    - record_account_status(): pending_verification -> active once the
      connect account can take charges and receive payouts
    - admin_review(): any -> active / pending_verification / suspended /
      deactivated
    """

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    # ==========================================================================
    # Registration & Profile
    # ==========================================================================

    def register(
        self,
        user_id: str,
        display_name: str,
        bio: str = "",
        specialties: list[str] | None = None,
        email: str | None = None,
    ) -> ProviderRegistration:
        """
        Create a provider in PENDING_VERIFICATION with a fresh connect account.

        The provider row and the account id are committed together; a gateway
        failure leaves no provider behind.

        Raises:
            ConflictError: provider_already_exists
            PaymentGatewayError: Account provisioning failed
        """
        logger = self.get_logger()

        if Provider.objects.filter(user_id=user_id).exists():
            raise ConflictError(
                "User already has a provider profile",
                error_code="provider_already_exists",
            )

        try:
            with self.atomic():
                provider = Provider.objects.create(
                    user_id=user_id,
                    display_name=display_name,
                    bio=bio,
                    specialties=specialties or [],
                )
                account = self.gateway.create_connect_account(
                    email or f"provider-{user_id}@example.com"
                )
                provider.link_payment_account(account.account_id)
                provider.save(update_fields=["stripe_account_id", "stripe_onboarding_complete", "updated_at"])
        except IntegrityError:
            raise ConflictError(
                "User already has a provider profile",
                error_code="provider_already_exists",
            ) from None

        logger.info(
            "Provider registered",
            extra={
                "provider_id": str(provider.id),
                "user_id": user_id,
                "stripe_account_id": account.account_id,
            },
        )
        return ProviderRegistration(provider=provider, onboarding_url=account.onboarding_url)

    def update(self, provider_id: uuid.UUID | str, actor_user_id: str, patch: dict[str, Any]) -> Provider:
        """
        Apply a partial profile update.

        Raises:
            NotFoundError: provider_not_found
            PermissionDeniedError: Caller is not the owner
        """
        provider = get_provider(provider_id)
        require_provider_owner(provider, actor_user_id)

        changed = [name for name in EDITABLE_PROFILE_FIELDS if name in patch]
        if not changed:
            return provider
        for name in changed:
            setattr(provider, name, patch[name])
        provider.save(update_fields=[*changed, "updated_at"])
        return provider

    def listed(self) -> QuerySet[Provider]:
        return Provider.objects.all()

    # ==========================================================================
    # Payment Onboarding
    # ==========================================================================

    def record_account_status(self, provider: Provider, status: AccountStatus) -> Provider:
        """
        Store onboarding progress reported by the processor.

        The onboarding flag always follows the account; status is promoted
        only out of PENDING_VERIFICATION.
        """
        with self.atomic():
            locked = Provider.objects.select_for_update().get(pk=provider.pk)
            previous_status = locked.status
            if status.onboarding_complete:
                locked.mark_onboarding_complete()
            else:
                locked.stripe_onboarding_complete = False
            locked.save(update_fields=["stripe_onboarding_complete", "status", "updated_at"])

        if locked.status != previous_status:
            self.get_logger().info(
                "Provider activated after onboarding",
                extra={"provider_id": str(locked.id), "from_status": previous_status},
            )
        return locked

    def complete_onboarding(self, provider_id: uuid.UUID | str) -> Provider:
        """
        Poll the processor and activate the provider once payouts are enabled.

        Raises:
            NotFoundError: provider_not_found
            PaymentGatewayError: Status lookup failed
        """
        provider = get_provider(provider_id)
        if not provider.has_payment_account:
            return provider

        status = self.gateway.get_account_status(provider.stripe_account_id)
        if not status.onboarding_complete:
            return provider
        return self.record_account_status(provider, status)

    def onboarding_link(self, provider_id: uuid.UUID | str, actor_user_id: str) -> str:
        """
        Fresh hosted onboarding URL for the caller's provider account.

        Raises:
            NotFoundError: provider_not_found
            PermissionDeniedError: Caller is not the owner
            ValidationError: no_stripe_account
        """
        provider = get_provider(provider_id)
        require_provider_owner(provider, actor_user_id)
        if not provider.has_payment_account:
            raise ValidationError(
                "Provider has no payment account",
                error_code="no_stripe_account",
            )

        self.complete_onboarding(provider.id)
        return self.gateway.create_account_link(provider.stripe_account_id)

    # ==========================================================================
    # Admin Review
    # ==========================================================================

    def admin_review(
        self,
        provider_id: uuid.UUID | str,
        decision: str,
        reviewer_user_id: str,
        reason: str = "",
        checklist: dict[str, Any] | None = None,
    ) -> Provider:
        """
        Record an admin decision and apply it.

        approved  -> ACTIVE if onboarding is complete, else PENDING_VERIFICATION
        rejected  -> DEACTIVATED
        suspended -> SUSPENDED

        Raises:
            ValidationError: invalid_decision / reason_required
            NotFoundError: provider_not_found
        """
        if decision not in ProviderReviewDecision.values:
            raise ValidationError(
                f"Unknown review decision: {decision}",
                error_code="invalid_decision",
            )
        if decision in (ProviderReviewDecision.REJECTED, ProviderReviewDecision.SUSPENDED) and not reason:
            raise ValidationError(
                "A reason is required when rejecting or suspending a provider",
                error_code="reason_required",
            )

        get_provider(provider_id)
        with self.atomic():
            provider = Provider.objects.select_for_update().get(pk=provider_id)
            previous_status = provider.status

            transition = {
                ProviderReviewDecision.APPROVED: provider.approve,
                ProviderReviewDecision.REJECTED: provider.reject,
                ProviderReviewDecision.SUSPENDED: provider.suspend,
            }[ProviderReviewDecision(decision)]
            if can_proceed(transition):
                transition()
            provider.save(update_fields=["status", "updated_at"])

            ProviderReview.objects.create(
                provider=provider,
                decision=decision,
                reason=reason,
                checklist=checklist or {},
                reviewed_by_user_id=reviewer_user_id,
            )

        self.get_logger().info(
            "Provider reviewed",
            extra={
                "provider_id": str(provider.id),
                "decision": decision,
                "from_status": previous_status,
                "to_status": provider.status,
                "reviewed_by": reviewer_user_id,
            },
        )
        return provider

    def review_queue(self) -> list[Provider]:
        """
        Providers awaiting verification, oldest first.

        Each provider carries `review_history` (newest first).
        """
        queryset = (
            Provider.objects.filter(status=ProviderStatus.PENDING_VERIFICATION)
            .order_by("created_at")
            .prefetch_related(
                Prefetch(
                    "reviews_received",
                    queryset=ProviderReview.objects.order_by("-created_at"),
                    to_attr="review_history",
                )
            )
        )
        return list(queryset[:REVIEW_QUEUE_LIMIT])
