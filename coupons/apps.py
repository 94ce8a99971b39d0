"""Django app configuration for coupons."""

from django.apps import AppConfig


class CouponsConfig(AppConfig):
    """Promotional codes resolved by the cart's coupon lookup."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "coupons"
