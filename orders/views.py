"""Orders API endpoints.

Customer endpoints operate on the caller's own orders; staff endpoints
(status updates, the admin listing and stats) require ``is_staff``.
"""

from common.exceptions import CommerceError
from common.views import CommerceAPIView, CommerceErrorMixin
from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import filters as drf_filters
from rest_framework import generics
from rest_framework import serializers as rf_serializers
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from .filters import OrderAdminFilterSet, OrderFilterSet
from .models import Order
from .selectors import order_detail_queryset, order_stats, orders_for_user
from .serializers import (
    CancelOrderSerializer,
    OrderSerializer,
    OrderStatsSerializer,
    OrderStatusUpdateSerializer,
    StatsRangeSerializer,
)
from .services import cancel_order, compute_request_hash, update_order_status, with_idempotency

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)

ErrorSerializer = inline_serializer(
    name="CommerceErrorResponse",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)


def idempotent_response(request, handler) -> Response:
    """Run ``handler`` once per ``Idempotency-Key`` header, replaying the stored response."""

    idem_key = request.headers.get("Idempotency-Key")
    if idem_key:
        body, code = with_idempotency(
            key=idem_key,
            user=request.user,
            path=str(request.path),
            method=str(request.method),
            request_hash=compute_request_hash(getattr(request, "data", None)),
            handler=handler,
        )
        return Response(body, status=code)
    body, code = handler()
    return Response(body, status=code)


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderListView(CommerceErrorMixin, generics.ListAPIView):
    """List authenticated user's orders with basic filters.

    Filters:
    - `status`: one of the OrderStatus values
    - `number`: exact match of order number
    - `start`: ISO date/time string; filters `created_at >= start`
    - `end`: ISO date/time string; filters `created_at <= end`
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = OrderFilterSet
    throttle_scope = "orders"

    def get_queryset(self):
        return orders_for_user(user=self.request.user).prefetch_related("timeline")

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List current user's orders with optional filters and pagination.",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="number", description="Order number exact match", required=False, type=str),
            OpenApiParameter(name="start", description="Created at >= start (ISO)", required=False, type=str),
            OpenApiParameter(name="end", description="Created at <= end (ISO)", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
            OpenApiParameter(name="page_size", description="Items per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(CommerceErrorMixin, generics.RetrieveAPIView):
    """Retrieve a single order; customers see their own, staff see any."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"
    serializer_class = OrderSerializer

    def get_queryset(self):
        qs = order_detail_queryset()
        if self.request.user.is_staff:
            return qs
        return qs.filter(user_id=self.request.user.id)

    def get_object(self):
        try:
            return self.get_queryset().get(id=int(self.kwargs["order_id"]))
        except (ValueError, Order.DoesNotExist):
            raise Http404("Not found.")

    @extend_schema(
        tags=["Orders"],
        summary="Get order detail",
        description="Retrieve a single order with its items, totals snapshot and status timeline.",
        examples=[
            OpenApiExample(
                "Order",
                value={
                    "id": 123,
                    "number": "ORD-000123",
                    "status": "pending",
                    "items": [
                        {
                            "id": 10,
                            "product": 555,
                            "product_title": "Vintage Jacket",
                            "variant": {"name": "Size", "options": [{"name": "size", "value": "M"}]},
                            "quantity": 2,
                            "unit_price": "25.00",
                            "line_total": "50.00",
                        }
                    ],
                    "subtotal": "50.00",
                    "tax_amount": "4.00",
                    "shipping_cost": "15.00",
                    "discount": {"code": "WELCOME10", "type": "percentage", "amount": "5.00"},
                    "total": "64.00",
                    "timeline": [{"status": "pending", "note": "Order placed", "actor": 7}],
                },
                response_only=True,
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderCancelView(CommerceAPIView):
    """Cancel an order for the authenticated owner.

    Idempotent when `Idempotency-Key` is provided. Returns 409 on key reuse with different payload.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        description=(
            "Cancels a pending or confirmed order and restores its inventory. "
            "Idempotent when Idempotency-Key header is set."
        ),
        request=CancelOrderSerializer,
        parameters=[IDEMPOTENCY_HEADER],
        responses={200: OrderSerializer, 403: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample("Cancelled", value={"id": 1, "status": "cancelled"}, response_only=True),
            OpenApiExample(
                "Too late",
                value={"detail": "Order in status shipped can no longer be cancelled.", "code": "invalid_transition"},
                response_only=True,
            ),
        ],
    )
    def post(self, request, order_id: int):
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _handler():
            try:
                order = cancel_order(order_id=order_id, user=request.user, reason=serializer.validated_data["reason"])
            except CommerceError as exc:
                return exc.as_dict(), exc.status_code
            return OrderSerializer(order, context={"request": request}).data, 200

        return idempotent_response(request, _handler)


class OrderStatusUpdateView(CommerceAPIView):
    """Staff-only status transition following the order lifecycle table."""

    permission_classes = [IsAdminUser]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Update order status",
        description=(
            "Moves the order to a new status. Cancelling restores inventory; refunding marks the payment "
            "refunded; tracking details may accompany shipping."
        ),
        request=OrderStatusUpdateSerializer,
        parameters=[IDEMPOTENCY_HEADER],
        responses={200: OrderSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Ship",
                value={"status": "shipped", "note": "Left warehouse", "tracking": {"carrier": "UPS", "number": "1Z"}},
                request_only=True,
            )
        ],
    )
    def post(self, request, order_id: int):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        def _handler():
            try:
                order = update_order_status(
                    order_id=order_id,
                    status=data["status"],
                    note=data.get("note", ""),
                    actor=request.user,
                    tracking=dict(data["tracking"]) if data.get("tracking") else None,
                )
            except CommerceError as exc:
                return exc.as_dict(), exc.status_code
            return OrderSerializer(order, context={"request": request}).data, 200

        return idempotent_response(request, _handler)


class AdminOrderListView(CommerceErrorMixin, generics.ListAPIView):
    """Staff listing of every order, filterable by status, customer and date range."""

    permission_classes = [IsAdminUser]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    throttle_scope = "orders"
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter]
    filterset_class = OrderAdminFilterSet
    ordering_fields = ["created_at", "total", "id"]
    ordering = ["-id"]

    def get_queryset(self):
        return order_detail_queryset()

    @extend_schema(
        tags=["Orders"],
        summary="List all orders (staff)",
        description="Filters: status, customer (user id), email, number, payment_status, start, end (ISO).",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderStatsView(CommerceAPIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Order statistics (staff)",
        description="Totals and per-status breakdown, optionally bounded by `start`/`end` (ISO date-times).",
        parameters=[
            OpenApiParameter(name="start", description="Created at >= start (ISO)", required=False, type=str),
            OpenApiParameter(name="end", description="Created at <= end (ISO)", required=False, type=str),
        ],
        responses={200: OrderStatsSerializer, 400: ErrorSerializer},
    )
    def get(self, request):
        bounds = StatsRangeSerializer(data=request.query_params)
        bounds.is_valid(raise_exception=True)
        stats = order_stats(**bounds.validated_data)
        return Response(OrderStatsSerializer(stats).data)
