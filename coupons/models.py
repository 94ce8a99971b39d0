"""Coupon app models.

Backs ``coupons.lookup.DatabaseCouponLookup``; codes are stored normalized
(trimmed, upper-case) so lookups are case-insensitive.
"""

from decimal import Decimal

from common.choices import DiscountType
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Coupon(TimeStampedModel):
    TYPE_PERCENTAGE = DiscountType.PERCENTAGE
    TYPE_FIXED = DiscountType.FIXED
    TYPE_CHOICES = DiscountType.choices

    code = models.CharField(max_length=40, unique=True)
    discount_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_PERCENTAGE)
    value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    is_active = models.BooleanField(default=True)
    starts_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.CheckConstraint(name="coupon_value_non_negative", condition=models.Q(value__gte=0)),
            models.CheckConstraint(
                name="coupon_percentage_max_100",
                condition=~models.Q(discount_type="percentage") | models.Q(value__lte=100),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)
