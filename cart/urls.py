"""Cart URL routes (v1)."""

from django.urls import path

from .views import (
    CartAddItemView,
    CartCheckoutView,
    CartClearView,
    CartCouponView,
    CartDetailView,
    CartItemDeleteView,
    CartItemUpdateView,
    CartPricingView,
)

app_name = "cart"

urlpatterns = [
    path("", CartDetailView.as_view(), name="cart-detail"),
    path("items/", CartAddItemView.as_view(), name="cart-add-item"),
    path("items/<int:item_id>/", CartItemUpdateView.as_view(), name="cart-update-item"),
    path("items/<int:item_id>/delete/", CartItemDeleteView.as_view(), name="cart-delete-item"),
    path("coupon/", CartCouponView.as_view(), name="cart-coupon"),
    path("pricing/", CartPricingView.as_view(), name="cart-pricing"),
    path("clear/", CartClearView.as_view(), name="cart-clear"),
    path("checkout/", CartCheckoutView.as_view(), name="cart-checkout"),
]
