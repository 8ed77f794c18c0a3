"""
Coverage admin configuration.

Status fields are FSM-managed and money fields are fixed at placement, so
orders and disputes are shown read-only for those columns. ProviderReview
and DisputeEvent are audit records and cannot be added, changed or deleted.
"""

from django.contrib import admin

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


class ReadOnlyAdminMixin:
    """Audit records: visible, never editable."""

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "display_name",
        "user_id",
        "status",
        "stripe_onboarding_complete",
        "avg_rating",
        "total_orders_completed",
        "created_at",
    ]
    list_filter = ["status", "stripe_onboarding_complete"]
    search_fields = ["id", "user_id", "display_name", "stripe_account_id"]
    readonly_fields = ["id", "status", "avg_rating", "total_orders_completed", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(ProviderReview)
class ProviderReviewAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["id", "provider", "decision", "reviewed_by_user_id", "created_at"]
    list_filter = ["decision"]
    search_fields = ["provider__id", "reviewed_by_user_id"]
    ordering = ["-created_at"]


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "provider", "tier", "price_cents", "turnaround_days", "active"]
    list_filter = ["tier", "active"]
    search_fields = ["id", "title", "provider__display_name"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "writer_user_id",
        "provider",
        "status",
        "amount_display",
        "sla_deadline",
        "updated_at",
    ]
    list_filter = ["status"]
    search_fields = ["id", "writer_user_id", "stripe_payment_intent_id", "stripe_transfer_id"]
    readonly_fields = [
        "id",
        "status",
        "price_cents",
        "platform_fee_cents",
        "provider_payout_cents",
        "currency",
        "stripe_payment_intent_id",
        "stripe_transfer_id",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    @admin.display(description="Amount")
    def amount_display(self, obj: Order) -> str:
        return f"{obj.price_cents / 100:.2f} {obj.currency.upper()}"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Delivery)
class DeliveryAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "score", "file_name", "created_at"]
    search_fields = ["order__id"]
    readonly_fields = ["id", "order", "created_at", "updated_at"]


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["id", "provider", "rating", "writer_user_id", "created_at"]
    list_filter = ["rating"]
    search_fields = ["order__id", "provider__display_name"]
    readonly_fields = ["id", "order", "provider", "writer_user_id", "created_at", "updated_at"]


class DisputeEventInline(admin.TabularInline):
    model = DisputeEvent
    extra = 0
    can_delete = False
    readonly_fields = ["event_type", "actor_user_id", "from_status", "to_status", "note", "created_at"]
    fields = readonly_fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "reason", "status", "opened_by_user_id", "created_at"]
    list_filter = ["status", "reason"]
    search_fields = ["id", "order__id", "opened_by_user_id"]
    readonly_fields = [
        "id",
        "order",
        "status",
        "refund_amount_cents",
        "resolved_at",
        "resolved_by_user_id",
        "created_at",
        "updated_at",
    ]
    inlines = [DisputeEventInline]


@admin.register(DisputeEvent)
class DisputeEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["id", "dispute", "event_type", "actor_user_id", "from_status", "to_status", "created_at"]
    list_filter = ["event_type"]
    search_fields = ["dispute__id", "actor_user_id"]
    ordering = ["-created_at"]
