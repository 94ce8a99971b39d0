"""Cart serializers for read and write operations."""

from rest_framework import serializers

from .models import CartItem
from .selectors import cart_totals


class VariantOptionSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=64)
    value = serializers.CharField(max_length=128)


class VariantSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    options = VariantOptionSerializer(many=True, required=False, default=list)


class CartItemReadSerializer(serializers.ModelSerializer):
    """Read serializer for a cart item."""

    product_id = serializers.IntegerField(source="product.id")
    product_title = serializers.CharField(source="product.title")
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "product_title",
            "variant",
            "quantity",
            "unit_price",
            "line_total",
            "added_at",
        ]


class CouponReadSerializer(serializers.Serializer):
    code = serializers.CharField()
    discount_type = serializers.CharField()
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    applied_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField(allow_null=True)


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the cart summary, items and derived totals."""

    id = serializers.IntegerField()
    version = serializers.IntegerField()
    items = CartItemReadSerializer(many=True)
    coupon = CouponReadSerializer(allow_null=True)
    shipping_method = serializers.CharField()
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    item_count = serializers.IntegerField()
    expires_at = serializers.DateTimeField()

    @classmethod
    def from_cart(cls, *, cart):
        totals = cart_totals(cart=cart)
        coupon = None
        if cart.coupon_code:
            coupon = {
                "code": cart.coupon_code,
                "discount_type": cart.coupon_type,
                "discount": cart.coupon_discount,
                "applied_at": cart.coupon_applied_at,
                "expires_at": cart.coupon_expires_at,
            }
        return cls(
            {
                "id": cart.id,
                "version": cart.version,
                "items": list(cart.items.select_related("product").all()),
                "coupon": coupon,
                "shipping_method": cart.shipping_method,
                "tax_rate": cart.tax_rate,
                "expires_at": cart.expires_at,
                **totals,
            }
        )


class AddItemSerializer(serializers.Serializer):
    """Write serializer for adding an item to the cart."""

    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    variant = VariantSerializer(required=False, allow_null=True, default=None)


class UpdateItemQuantitySerializer(serializers.Serializer):
    """Write serializer for setting a cart item quantity; zero removes the line."""

    quantity = serializers.IntegerField(min_value=0)


class ApplyCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=40)


class PricingSerializer(serializers.Serializer):
    shipping_method = serializers.CharField(max_length=32, required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide shipping_method and/or tax_rate.")
        return attrs
