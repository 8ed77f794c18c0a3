import django_filters as filters

from marketplace.models import Dispute, Order, Provider, Service
from marketplace.services.providers import filter_by_specialty
from marketplace.state_machines import DisputeStatus, OrderStatus, ProviderStatus, ServiceTier


class ProviderFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=ProviderStatus.choices)
    specialty = filters.CharFilter(method="filter_specialty")

    class Meta:
        model = Provider
        fields = ["status", "specialty"]

    def filter_specialty(self, queryset, name, value):
        return filter_by_specialty(queryset, value)


class ServiceFilter(filters.FilterSet):
    tier = filters.ChoiceFilter(choices=ServiceTier.choices)
    min_price = filters.NumberFilter(field_name="price_cents", lookup_expr="gte")
    max_price = filters.NumberFilter(field_name="price_cents", lookup_expr="lte")
    max_turnaround = filters.NumberFilter(field_name="turnaround_days", lookup_expr="lte")
    provider_id = filters.UUIDFilter(field_name="provider_id")

    class Meta:
        model = Service
        fields = ["tier", "min_price", "max_price", "max_turnaround", "provider_id"]


class OrderFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=OrderStatus.choices)
    provider_id = filters.UUIDFilter(field_name="provider_id")
    writer_user_id = filters.CharFilter(field_name="writer_user_id")

    class Meta:
        model = Order
        fields = ["status", "provider_id", "writer_user_id"]


class DisputeFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=DisputeStatus.choices)

    class Meta:
        model = Dispute
        fields = ["status"]
