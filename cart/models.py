"""Cart app models.

One mutable cart per user: line items, an embedded coupon, shipping and tax
selections. Totals are derived on read (see ``cart.selectors.cart_totals``).
"""

from datetime import timedelta
from decimal import Decimal

from common.choices import DiscountType
from django.conf import settings
from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


def default_cart_expiry():
    return timezone.now() + timedelta(days=getattr(settings, "CART_TTL_DAYS", 30))


class Cart(TimeStampedModel):
    """Shopping cart bound to a user.

    ``version`` increments on every mutation so clients can detect stale
    writes; ``expires_at`` slides forward on every mutation.
    """

    user = models.OneToOneField(settings.AUTH_USER_MODEL, related_name="cart", on_delete=models.CASCADE)

    coupon_code = models.CharField(max_length=40, blank=True, default="")
    coupon_discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    coupon_type = models.CharField(max_length=16, choices=DiscountType.choices, blank=True, default="")
    coupon_applied_at = models.DateTimeField(null=True, blank=True)
    coupon_expires_at = models.DateTimeField(null=True, blank=True)

    shipping_method = models.CharField(max_length=32, default="standard")
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    expires_at = models.DateTimeField(default=default_cart_expiry, db_index=True)
    version = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Cart#{self.id} ({self.user_id})"

    @property
    def has_coupon(self) -> bool:
        return bool(self.coupon_code)


class CartItem(models.Model):
    """Line item for a product (and optional variant) in a shopping cart."""

    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="cart_items", on_delete=models.CASCADE)
    variant = models.JSONField(null=True, blank=True)
    variant_key = models.CharField(max_length=64, blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    added_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product", "variant_key"], name="unique_line_per_cart"),
            models.CheckConstraint(name="quantity_positive", condition=models.Q(quantity__gte=1)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartItem#{self.id} cart={self.cart_id} product={self.product_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))
