"""URL routes for the orders app (v1)."""

from django.urls import path

from .views import (
    AdminOrderListView,
    OrderCancelView,
    OrderDetailView,
    OrderListView,
    OrderStatsView,
    OrderStatusUpdateView,
)

app_name = "orders"

urlpatterns = [
    path("", OrderListView.as_view(), name="order-list"),
    path("admin/", AdminOrderListView.as_view(), name="order-admin-list"),
    path("admin/stats/", OrderStatsView.as_view(), name="order-admin-stats"),
    path("<int:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<int:order_id>/cancel/", OrderCancelView.as_view(), name="order-cancel"),
    path("<int:order_id>/status/", OrderStatusUpdateView.as_view(), name="order-status"),
]
