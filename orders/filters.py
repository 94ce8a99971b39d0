"""FilterSets for the customer and staff order listings."""

from common.choices import OrderStatus
from django_filters import rest_framework as filters

from .models import Order


class OrderFilterSet(filters.FilterSet):
    status = filters.ChoiceFilter(choices=OrderStatus.choices)
    start = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["status", "number", "start", "end"]


class OrderAdminFilterSet(OrderFilterSet):
    customer = filters.NumberFilter(field_name="user_id")
    email = filters.CharFilter(field_name="user__email", lookup_expr="iexact")
    payment_status = filters.CharFilter(field_name="payment_status")

    class Meta(OrderFilterSet.Meta):
        fields = ["status", "customer", "email", "number", "payment_status", "start", "end"]
