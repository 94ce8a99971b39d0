"""DRF serializers for Orders.

Orders are snapshots: every financial figure is read from the columns frozen at
checkout, never recomputed from the catalog.
"""

from common.choices import OrderStatus, PaymentMethod
from rest_framework import serializers

from .models import Order, OrderItem, OrderStatusEntry


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_title",
            "variant",
            "quantity",
            "unit_price",
            "line_total",
        ]
        read_only_fields = fields


class OrderStatusEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusEntry
        fields = ["status", "note", "actor", "created_at"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """API representation for an order, its lines and status timeline."""

    items = OrderItemSerializer(many=True, read_only=True)
    timeline = OrderStatusEntrySerializer(many=True, read_only=True)
    payment = serializers.SerializerMethodField(read_only=True)
    discount = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "user",
            "status",
            "created_at",
            "updated_at",
            "items",
            "subtotal",
            "tax_rate",
            "tax_amount",
            "shipping_method",
            "shipping_cost",
            "discount",
            "total",
            "shipping_address",
            "billing_same_as_shipping",
            "billing_address",
            "tracking",
            "payment",
            "customer_note",
            "timeline",
        ]
        read_only_fields = fields

    def get_payment(self, obj: Order) -> dict:
        return {
            "method": obj.payment_method,
            "status": obj.payment_status,
            "transaction_id": obj.payment_transaction_id,
            "amount": str(obj.payment_amount),
            "currency": obj.payment_currency,
        }

    def get_discount(self, obj: Order) -> dict:
        return {"code": obj.discount_code, "type": obj.discount_type, "amount": str(obj.discount_amount)}


class AddressSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    zip_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")


class BillingSerializer(serializers.Serializer):
    """Billing address; all address fields optional when copying shipping."""

    same_as_shipping = serializers.BooleanField(default=True)
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    street = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    zip_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    country = serializers.CharField(max_length=100, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get("same_as_shipping", True):
            missing = [
                name
                for name in ("first_name", "last_name", "street", "city", "zip_code", "country")
                if not attrs.get(name)
            ]
            if missing:
                raise serializers.ValidationError({name: "This field is required." for name in missing})
        return attrs


class PaymentSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    transaction_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    currency = serializers.CharField(max_length=3, required=False)


class CheckoutSerializer(serializers.Serializer):
    """Write serializer for converting the cart into an order."""

    shipping_address = AddressSerializer()
    billing = BillingSerializer(required=False)
    payment = PaymentSerializer()
    customer_note = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class TrackingSerializer(serializers.Serializer):
    carrier = serializers.CharField(max_length=100, required=False, allow_blank=True)
    number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    url = serializers.URLField(required=False, allow_blank=True)


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    note = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    tracking = TrackingSerializer(required=False)


class StatusBucketSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    revenue = serializers.DecimalField(max_digits=14, decimal_places=2)


class OrderStatsSerializer(serializers.Serializer):
    total_orders = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    average_order_value = serializers.DecimalField(max_digits=14, decimal_places=2)
    by_status = serializers.DictField(child=StatusBucketSerializer())


class StatsRangeSerializer(serializers.Serializer):
    """Optional ISO date-time bounds for the stats endpoint."""

    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
