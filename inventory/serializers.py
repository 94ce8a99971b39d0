"""Serializers for inventory domain.

Read-only serializers for stock items and movements.
"""

from rest_framework import serializers

from .models import StockItem, StockMovement
from .selectors import availability


class StockItemSerializer(serializers.ModelSerializer):
    """Read-only representation of stock for a product.

    Exposes the product SKU and the derived ``availability`` label.
    """

    sku = serializers.CharField(source="product.sku", read_only=True)
    availability = serializers.SerializerMethodField(read_only=True)
    is_low = serializers.BooleanField(read_only=True)

    class Meta:
        model = StockItem
        fields = [
            "id",
            "product",
            "sku",
            "track_inventory",
            "quantity",
            "allow_backorder",
            "low_stock_threshold",
            "is_low",
            "availability",
            "total_sold",
            "total_revenue",
            "updated_at",
        ]
        read_only_fields = fields

    def get_availability(self, obj) -> str:
        return availability(obj.product)


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = [
            "id",
            "stock_item",
            "movement_type",
            "quantity",
            "reason",
            "reference",
            "created_at",
        ]
        read_only_fields = fields


# EOF
