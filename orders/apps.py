"""Django app configuration for orders."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Order snapshots, status lifecycle and checkout orchestration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
