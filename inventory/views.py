"""Staff-only, read-only inventory list views."""

from django.utils.dateparse import parse_datetime
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import generics, permissions

from .models import StockItem, StockMovement
from .selectors import low_stock_items
from .serializers import StockItemSerializer, StockMovementSerializer


def _since(raw):
    # Malformed or impossible dates are ignored like a missing filter
    try:
        return parse_datetime(raw)
    except ValueError:
        return None


class StockItemListView(generics.ListAPIView):
    permission_classes = [permissions.IsAdminUser]
    serializer_class = StockItemSerializer

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock items",
        description="List current stock per product. Filters: product_id, sku, low_stock, updated_after (ISO).",
        parameters=[
            OpenApiParameter("product_id", int, OpenApiParameter.QUERY),
            OpenApiParameter("sku", str, OpenApiParameter.QUERY),
            OpenApiParameter("low_stock", bool, OpenApiParameter.QUERY),
            OpenApiParameter("updated_after", str, OpenApiParameter.QUERY),
        ],
        examples=[
            OpenApiExample(
                "Stock Items",
                value={
                    "results": [
                        {
                            "id": 1,
                            "product": 10,
                            "sku": "SKU-00001",
                            "track_inventory": True,
                            "quantity": 3,
                            "allow_backorder": False,
                            "low_stock_threshold": 5,
                            "is_low": True,
                            "availability": "in-stock",
                            "total_sold": 7,
                            "total_revenue": "175.00",
                            "updated_at": "2025-01-01T12:00:00Z",
                        }
                    ]
                },
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        params = self.request.query_params
        product_id = params.get("product_id")
        sku = params.get("sku")
        low_stock = params.get("low_stock")
        updated_after = params.get("updated_after")

        qs = StockItem.objects.select_related("product")
        if low_stock and low_stock.lower() in ("1", "true", "yes"):
            qs = low_stock_items()
        qs = qs.order_by("-updated_at", "id")

        if product_id:
            qs = qs.filter(product_id=product_id)
        if sku:
            qs = qs.filter(product__sku__iexact=sku)
        if updated_after:
            dt = _since(updated_after)
            if dt:
                qs = qs.filter(updated_at__gte=dt)
        return qs


class MovementListView(generics.ListAPIView):
    permission_classes = [permissions.IsAdminUser]
    serializer_class = StockMovementSerializer

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock movements",
        description=(
            "List movements (inbound/outbound/adjust). Filters: stock_item, movement_type, reference, "
            "created_after (ISO)."
        ),
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        qs = StockMovement.objects.select_related("stock_item").order_by("-created_at", "id")
        params = self.request.query_params
        stock_item = params.get("stock_item")
        movement_type = params.get("movement_type")
        reference = params.get("reference")
        created_after = params.get("created_after")

        if stock_item:
            qs = qs.filter(stock_item_id=stock_item)
        if movement_type:
            qs = qs.filter(movement_type=movement_type)
        if reference:
            qs = qs.filter(reference=reference)
        if created_after:
            dt = _since(created_after)
            if dt:
                qs = qs.filter(created_at__gte=dt)
        return qs


# EOF
