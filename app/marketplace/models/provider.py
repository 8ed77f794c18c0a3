"""
Provider and ProviderReview models.

A Provider is the marketplace profile of a user who sells coverage. Its
status is a django-fsm field; onboarding with the payment processor and
admin review are the only ways it changes.

Usage:
    from marketplace.models import Provider

    provider = Provider.objects.create(user_id="user_42", display_name="Ada")
    provider.link_payment_account("acct_123")
    provider.save()

    # Payment onboarding finished
    provider.mark_onboarding_complete()
    provider.save()  # pending_verification -> active
"""

from __future__ import annotations

from django.db import models
from django_fsm import RETURN_VALUE, FSMField, can_proceed, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from marketplace.state_machines import ProviderReviewDecision, ProviderStatus


class Provider(UUIDPrimaryKeyMixin, BaseModel):
    """
    Coverage provider profile linked to an identity-service user.

    State Flow:
        PENDING_VERIFICATION -> ACTIVE (onboarding complete / admin approval)
        any -> SUSPENDED / DEACTIVATED (admin decision)

    Automatic promotion (onboarding webhooks) only ever leaves
    PENDING_VERIFICATION; SUSPENDED and DEACTIVATED providers return to
    ACTIVE only through an explicit admin approval.

    Fields:
        user_id: Owning user (one provider per user)
        display_name/bio/specialties: Public profile
        status: Verification status (FSM)
        stripe_account_id: Connect account receiving payouts
        stripe_onboarding_complete: Account can take charges and receive payouts
        avg_rating: Mean review rating, recomputed from all reviews
        total_orders_completed: Number of reviewed orders
    """

    # ==========================================================================
    # Identity & Profile
    # ==========================================================================

    user_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Identity-service user id owning this provider profile",
    )

    display_name = models.CharField(
        max_length=200,
        help_text="Public name shown to writers",
    )

    bio = models.TextField(
        blank=True,
        default="",
        help_text="Free-form provider biography",
    )

    specialties = models.JSONField(
        default=list,
        blank=True,
        help_text="Genre/format tags, e.g. ['drama', 'feature']",
    )

    # ==========================================================================
    # Verification State
    # ==========================================================================

    status = FSMField(
        default=ProviderStatus.PENDING_VERIFICATION,
        choices=ProviderStatus.choices,
        db_index=True,
        protected=False,
        help_text="Verification status (managed by FSM)",
    )

    # ==========================================================================
    # Payment Account
    # ==========================================================================

    stripe_account_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Connect account id (acct_xxx)",
    )

    stripe_onboarding_complete = models.BooleanField(
        default=False,
        help_text="Connect account can accept charges and receive payouts",
    )

    # ==========================================================================
    # Reputation (derived from reviews)
    # ==========================================================================

    avg_rating = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Mean rating over all reviews, null until the first review",
    )

    total_orders_completed = models.PositiveIntegerField(
        default=0,
        help_text="Number of reviewed orders",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Provider"
        verbose_name_plural = "Providers"
        indexes = [
            models.Index(fields=["status", "created_at"], name="cov_provider_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Provider({self.id}, {self.display_name}, {self.status})"

    @property
    def has_payment_account(self) -> bool:
        return bool(self.stripe_account_id)

    def link_payment_account(self, account_id: str) -> None:
        """Attach a freshly provisioned connect account (onboarding pending)."""
        self.stripe_account_id = account_id
        self.stripe_onboarding_complete = False

    def mark_onboarding_complete(self) -> None:
        """
        Record completed payment onboarding.

        Always sets the flag; promotes to ACTIVE only from
        PENDING_VERIFICATION. Does not save.
        """
        self.stripe_onboarding_complete = True
        if can_proceed(self.promote):
            self.promote()

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=ProviderStatus.PENDING_VERIFICATION,
        target=ProviderStatus.ACTIVE,
    )
    def promote(self):
        """
        Activate a provider whose onboarding just completed.

        Transition: PENDING_VERIFICATION -> ACTIVE
        """

    @transition(
        field=status,
        source="*",
        target=RETURN_VALUE(ProviderStatus.ACTIVE, ProviderStatus.PENDING_VERIFICATION),
    )
    def approve(self):
        """
        Admin approval.

        Transition: any -> ACTIVE if onboarding is complete,
        else PENDING_VERIFICATION (activates later via promote()).
        """
        if self.stripe_onboarding_complete:
            return ProviderStatus.ACTIVE
        return ProviderStatus.PENDING_VERIFICATION

    @transition(field=status, source="*", target=ProviderStatus.DEACTIVATED)
    def reject(self):
        """Transition: any -> DEACTIVATED"""

    @transition(field=status, source="*", target=ProviderStatus.SUSPENDED)
    def suspend(self):
        """Transition: any -> SUSPENDED"""


class ProviderReview(UUIDPrimaryKeyMixin, BaseModel):
    """
    Immutable record of an admin decision about a provider.

    Appended on every review regardless of the decision; the latest one is
    shown in the review queue.
    """

    provider = models.ForeignKey(
        Provider,
        on_delete=models.PROTECT,
        related_name="reviews_received",
        help_text="Provider under review",
    )

    decision = models.CharField(
        max_length=20,
        choices=ProviderReviewDecision.choices,
        help_text="Admin decision",
    )

    reason = models.TextField(
        blank=True,
        default="",
        help_text="Required for rejections and suspensions",
    )

    checklist = models.JSONField(
        default=dict,
        blank=True,
        help_text="Verification checklist results, e.g. {'identity': true}",
    )

    reviewed_by_user_id = models.CharField(
        max_length=255,
        help_text="Admin who made the decision",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Provider Review"
        verbose_name_plural = "Provider Reviews"
        indexes = [
            models.Index(fields=["provider", "created_at"], name="cov_prreview_provider_idx"),
        ]

    def __str__(self) -> str:
        return f"ProviderReview({self.provider_id}, {self.decision})"
