"""DRF views for cart operations.

Mutations accept the cart version the client last read in an ``If-Match``
header; a stale version is rejected with ``concurrency_conflict`` (409).
"""

from common.exceptions import CommerceError
from common.views import CommerceAPIView
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from orders.serializers import CheckoutSerializer, OrderSerializer
from orders.services import checkout_cart
from orders.views import ErrorSerializer, idempotent_response
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .selectors import get_cart_for_user
from .serializers import (
    AddItemSerializer,
    ApplyCouponSerializer,
    CartReadSerializer,
    PricingSerializer,
    UpdateItemQuantitySerializer,
)
from .services import (
    add_item,
    apply_coupon,
    clear_cart,
    remove_coupon,
    remove_item,
    set_item_quantity,
    set_shipping_and_tax,
)

IF_MATCH_HEADER = OpenApiParameter(
    name="If-Match",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Cart version the client last read; stale versions are rejected with 409",
    type=int,
)

CART_EXAMPLE = OpenApiExample(
    "Cart",
    value={
        "id": 1,
        "version": 3,
        "items": [
            {
                "id": 10,
                "product_id": 100,
                "product_title": "Vintage Jacket",
                "variant": None,
                "quantity": 2,
                "unit_price": "50.00",
                "line_total": "100.00",
                "added_at": "2025-01-01T12:00:00Z",
            }
        ],
        "coupon": {
            "code": "WELCOME10",
            "discount_type": "percentage",
            "discount": "10.00",
            "applied_at": "2025-01-01T12:00:00Z",
            "expires_at": "2025-01-02T12:00:00Z",
        },
        "shipping_method": "express",
        "tax_rate": "8.00",
        "subtotal": "100.00",
        "discount_amount": "10.00",
        "shipping_cost": "15.00",
        "tax_amount": "8.00",
        "total": "113.00",
        "item_count": 2,
        "expires_at": "2025-01-31T12:00:00Z",
    },
    response_only=True,
)


def expected_version(request):
    """Parse the ``If-Match`` header as a cart version; ``None`` when absent."""

    raw = (request.headers.get("If-Match") or "").strip().strip('"')
    if not raw or raw == "*":
        return None
    try:
        return int(raw)
    except ValueError:
        raise CommerceError("If-Match must be an integer cart version.") from None


def cart_response(cart, *, status_code=status.HTTP_200_OK) -> Response:
    return Response(CartReadSerializer.from_cart(cart=cart).data, status=status_code)


class CartDetailView(CommerceAPIView):
    """Return the authenticated user's cart, creating it on first access."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get cart",
        description="Returns the authenticated user's cart including items, coupon and derived totals.",
        responses={200: CartReadSerializer},
        examples=[CART_EXAMPLE],
    )
    def get(self, request):
        return cart_response(get_cart_for_user(user=request.user))


class CartAddItemView(CommerceAPIView):
    """Add an item to the cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description=(
            "Adds a product (optionally a variant) to the cart. An identical product+variant line is merged "
            "by summing quantities."
        ),
        request=AddItemSerializer,
        parameters=[IF_MATCH_HEADER],
        responses={201: CartReadSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Add",
                value={"product_id": 100, "quantity": 2, "variant": {"name": "Size", "options": []}},
                request_only=True,
            ),
            CART_EXAMPLE,
        ],
    )
    def post(self, request):
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        cart = add_item(
            user=request.user,
            product_id=data["product_id"],
            quantity=data["quantity"],
            variant=data.get("variant"),
            expected_version=expected_version(request),
        )
        return cart_response(cart, status_code=status.HTTP_201_CREATED)


class CartItemUpdateView(CommerceAPIView):
    """Set a cart item's quantity; zero removes it."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        description="Sets the line quantity. Zero removes the line; availability is re-checked otherwise.",
        request=UpdateItemQuantitySerializer,
        parameters=[IF_MATCH_HEADER],
        responses={200: CartReadSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[OpenApiExample("Update", value={"quantity": 3}, request_only=True)],
    )
    def patch(self, request, item_id: int):
        serializer = UpdateItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = set_item_quantity(
            user=request.user,
            item_id=item_id,
            quantity=serializer.validated_data["quantity"],
            expected_version=expected_version(request),
        )
        return cart_response(cart)


class CartItemDeleteView(CommerceAPIView):
    """Remove an item from the cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Delete cart item",
        description="Removes a cart line. Removing a line that is not in the cart is a no-op.",
        parameters=[IF_MATCH_HEADER],
        responses={204: None, 409: ErrorSerializer},
    )
    def delete(self, request, item_id: int):
        remove_item(user=request.user, item_id=item_id, expected_version=expected_version(request))
        return Response(status=status.HTTP_204_NO_CONTENT)


class CartCouponView(CommerceAPIView):
    """Apply or remove the cart's coupon."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Apply coupon",
        description="Validates the code and attaches it to the cart, replacing any existing coupon.",
        request=ApplyCouponSerializer,
        parameters=[IF_MATCH_HEADER],
        responses={200: CartReadSerializer, 400: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample("Apply", value={"code": "WELCOME10"}, request_only=True),
            OpenApiExample(
                "Unknown code",
                value={"detail": "Coupon 'NOPE' is not valid.", "code": "invalid_coupon"},
                response_only=True,
                status_codes=["400"],
            ),
        ],
    )
    def post(self, request):
        serializer = ApplyCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = apply_coupon(
            user=request.user, code=serializer.validated_data["code"], expected_version=expected_version(request)
        )
        return cart_response(cart)

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Remove coupon",
        parameters=[IF_MATCH_HEADER],
        responses={200: CartReadSerializer, 409: ErrorSerializer},
    )
    def delete(self, request):
        return cart_response(remove_coupon(user=request.user, expected_version=expected_version(request)))


class CartPricingView(CommerceAPIView):
    """Select the shipping method and tax rate used in cart totals."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Set shipping and tax",
        description="Shipping cost comes from the configured shipping methods; tax rate is a percentage.",
        request=PricingSerializer,
        parameters=[IF_MATCH_HEADER],
        responses={200: CartReadSerializer, 400: ErrorSerializer, 409: ErrorSerializer},
        examples=[OpenApiExample("Pricing", value={"shipping_method": "express", "tax_rate": "8.00"})],
    )
    def patch(self, request):
        serializer = PricingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = set_shipping_and_tax(
            user=request.user, expected_version=expected_version(request), **serializer.validated_data
        )
        return cart_response(cart)


class CartClearView(CommerceAPIView):
    """Clear the cart: delete items and coupon, keep shipping/tax selections."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        description="Deletes items and the coupon. The cart itself is kept.",
        parameters=[IF_MATCH_HEADER],
        responses={200: CartReadSerializer, 409: ErrorSerializer},
    )
    def post(self, request):
        return cart_response(clear_cart(user=request.user, expected_version=expected_version(request)))


class CartCheckoutView(CommerceAPIView):
    """Convert the cart into an order."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Checkout cart",
        description=(
            "Creates a pending order from the cart, reserves inventory for every line and empties the cart. "
            "Nothing is changed when any line is unavailable."
        ),
        request=CheckoutSerializer,
        parameters=[
            IF_MATCH_HEADER,
            OpenApiParameter(
                name="Idempotency-Key",
                location=OpenApiParameter.HEADER,
                required=False,
                description="When provided, checkout becomes idempotent for this user+path+method",
                type=str,
            ),
        ],
        responses={
            201: OrderSerializer,
            400: ErrorSerializer,
            409: inline_serializer(
                name="CheckoutConflict",
                fields={
                    "detail": rf_serializers.CharField(),
                    "code": rf_serializers.CharField(),
                    "product_id": rf_serializers.IntegerField(required=False),
                },
            ),
        },
        examples=[
            OpenApiExample(
                "Checkout",
                value={
                    "shipping_address": {
                        "first_name": "Ada",
                        "last_name": "Lovelace",
                        "street": "12 Analytical Way",
                        "city": "London",
                        "zip_code": "N1 9GU",
                        "country": "GB",
                    },
                    "billing": {"same_as_shipping": True},
                    "payment": {"method": "credit_card"},
                },
                request_only=True,
            ),
            OpenApiExample(
                "Unavailable",
                value={"detail": "Product 7 is no longer available.", "code": "product_unavailable", "product_id": 7},
                response_only=True,
                status_codes=["409"],
            ),
        ],
    )
    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        version = expected_version(request)
        metadata = {
            "source": "api",
            "user_agent": request.META.get("HTTP_USER_AGENT", ""),
            "ip": request.META.get("REMOTE_ADDR"),
        }

        def _handler():
            try:
                order = checkout_cart(
                    user=request.user,
                    shipping=dict(data["shipping_address"]),
                    billing=dict(data["billing"]) if data.get("billing") else None,
                    payment=dict(data["payment"]),
                    customer_note=data.get("customer_note", ""),
                    metadata=metadata,
                    expected_version=version,
                )
            except CommerceError as exc:
                return exc.as_dict(), exc.status_code
            return OrderSerializer(order, context={"request": request}).data, status.HTTP_201_CREATED

        return idempotent_response(request, _handler)
