"""
Serializers for the coverage API.

Read and write serializers are separate: output serializers render models,
input serializers only validate request payloads and hand plain dicts to the
service layer.

Serializer Hierarchy:
    ProviderSerializer: Public provider profile
    ProviderQueueSerializer: Provider with its latest admin review
    ProviderRegisterSerializer / ProviderUpdateSerializer: Profile input
    ProviderReviewDecisionSerializer: Admin review input

    ServiceSerializer: Catalog entry
    ServiceCreateSerializer / ServiceUpdateSerializer: Catalog input

    OrderSerializer: Order with its money split and timestamps
    OrderCreateSerializer: Place an order
    DeliverySerializer / DeliveryCreateSerializer: Coverage report
    ReviewSerializer / ReviewCreateSerializer: Writer rating

    DisputeSerializer / DisputeEventSerializer: Dispute and audit trail
    DisputeCreateSerializer / DisputeUpdateSerializer: Dispute input
"""

from __future__ import annotations

from rest_framework import serializers

from marketplace.models import (
    Delivery,
    Dispute,
    DisputeEvent,
    Order,
    Provider,
    ProviderReview,
    Review,
    Service,
)
from marketplace.state_machines import (
    DisputeReason,
    DisputeStatus,
    ProviderReviewDecision,
    ServiceTier,
)

# =============================================================================
# Providers
# =============================================================================


class ProviderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Provider
        fields = [
            "id",
            "user_id",
            "display_name",
            "bio",
            "specialties",
            "status",
            "stripe_account_id",
            "stripe_onboarding_complete",
            "avg_rating",
            "total_orders_completed",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProviderReviewSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProviderReview
        fields = [
            "id",
            "provider",
            "decision",
            "reason",
            "checklist",
            "reviewed_by_user_id",
            "created_at",
        ]
        read_only_fields = fields


class ProviderQueueSerializer(ProviderSerializer):
    """Provider awaiting verification, with the most recent admin review."""

    latest_review = serializers.SerializerMethodField()

    class Meta(ProviderSerializer.Meta):
        fields = [*ProviderSerializer.Meta.fields, "latest_review"]
        read_only_fields = fields

    def get_latest_review(self, obj: Provider) -> dict | None:
        history = getattr(obj, "review_history", None)
        if history is None:
            history = list(obj.reviews_received.order_by("-created_at")[:1])
        if not history:
            return None
        return ProviderReviewSerializer(history[0]).data


class ProviderRegisterSerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=200)
    bio = serializers.CharField(required=False, allow_blank=True, default="")
    specialties = serializers.ListField(
        child=serializers.CharField(max_length=50),
        required=False,
        default=list,
    )
    email = serializers.EmailField(required=False)


class ProviderUpdateSerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=200, required=False)
    bio = serializers.CharField(required=False, allow_blank=True)
    specialties = serializers.ListField(
        child=serializers.CharField(max_length=50),
        required=False,
    )


class ProviderReviewDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=ProviderReviewDecision.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    checklist = serializers.DictField(required=False, default=dict)


# =============================================================================
# Services
# =============================================================================


class ServiceSerializer(serializers.ModelSerializer):
    provider_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Service
        fields = [
            "id",
            "provider_id",
            "title",
            "description",
            "tier",
            "price_cents",
            "currency",
            "turnaround_days",
            "max_pages",
            "active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ServiceCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    tier = serializers.ChoiceField(choices=ServiceTier.choices)
    price_cents = serializers.IntegerField(min_value=1)
    currency = serializers.CharField(min_length=3, max_length=3, required=False, default="usd")
    turnaround_days = serializers.IntegerField(min_value=1, max_value=365)
    max_pages = serializers.IntegerField(min_value=1)

    def validate_currency(self, value: str) -> str:
        return value.lower()


class ServiceUpdateSerializer(ServiceCreateSerializer):
    """Partial update; also lets the owner delist a service."""

    active = serializers.BooleanField(required=False)

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("partial", True)
        super().__init__(*args, **kwargs)


# =============================================================================
# Orders, Deliveries & Reviews
# =============================================================================


class OrderSerializer(serializers.ModelSerializer):
    provider_id = serializers.UUIDField(read_only=True)
    service_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "writer_user_id",
            "provider_id",
            "service_id",
            "script_id",
            "project_id",
            "status",
            "price_cents",
            "platform_fee_cents",
            "provider_payout_cents",
            "currency",
            "stripe_payment_intent_id",
            "stripe_transfer_id",
            "sla_deadline",
            "claimed_at",
            "delivered_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderCreateSerializer(serializers.Serializer):
    service_id = serializers.UUIDField()
    script_id = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    project_id = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class DeliverySerializer(serializers.ModelSerializer):
    order_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Delivery
        fields = [
            "id",
            "order_id",
            "summary",
            "strengths",
            "weaknesses",
            "recommendations",
            "score",
            "file_key",
            "file_name",
            "created_at",
        ]
        read_only_fields = fields


class DeliveryCreateSerializer(serializers.Serializer):
    summary = serializers.CharField(allow_blank=True, required=False, default="")
    strengths = serializers.CharField(allow_blank=True, required=False, default="")
    weaknesses = serializers.CharField(allow_blank=True, required=False, default="")
    recommendations = serializers.CharField(allow_blank=True, required=False, default="")
    score = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    file_key = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    file_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class ReviewSerializer(serializers.ModelSerializer):
    order_id = serializers.UUIDField(read_only=True)
    provider_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "order_id",
            "provider_id",
            "writer_user_id",
            "rating",
            "comment",
            "created_at",
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    # Range is enforced by the service (invalid_rating)
    rating = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")


# =============================================================================
# Disputes
# =============================================================================


class DisputeSerializer(serializers.ModelSerializer):
    order_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "order_id",
            "opened_by_user_id",
            "reason",
            "description",
            "status",
            "admin_notes",
            "refund_amount_cents",
            "resolved_at",
            "resolved_by_user_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DisputeEventSerializer(serializers.ModelSerializer):
    dispute_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = DisputeEvent
        fields = [
            "id",
            "dispute_id",
            "actor_user_id",
            "event_type",
            "note",
            "from_status",
            "to_status",
            "created_at",
        ]
        read_only_fields = fields


class DisputeCreateSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=DisputeReason.choices)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class DisputeUpdateSerializer(serializers.Serializer):
    """
    Admin dispute update.

    status=under_review starts triage; any resolved_* status resolves.
    """

    status = serializers.ChoiceField(
        choices=[
            (DisputeStatus.UNDER_REVIEW, DisputeStatus.UNDER_REVIEW.label),
            (DisputeStatus.RESOLVED_REFUND, DisputeStatus.RESOLVED_REFUND.label),
            (DisputeStatus.RESOLVED_NO_REFUND, DisputeStatus.RESOLVED_NO_REFUND.label),
            (DisputeStatus.RESOLVED_PARTIAL, DisputeStatus.RESOLVED_PARTIAL.label),
        ]
    )
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    refund_amount_cents = serializers.IntegerField(required=False, allow_null=True)
