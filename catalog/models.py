"""Catalog app models.

The catalog is owned by merchandising tooling; the cart and order engine only
reads products (price, status) and never creates or deletes them.
"""

from decimal import Decimal

from common.choices import ProductStatus
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Sellable product referenced by cart and order lines."""

    STATUS_DRAFT = ProductStatus.DRAFT
    STATUS_ACTIVE = ProductStatus.ACTIVE
    STATUS_INACTIVE = ProductStatus.INACTIVE
    STATUS_ARCHIVED = ProductStatus.ARCHIVED
    STATUS_CHOICES = ProductStatus.choices

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    sku = models.CharField(max_length=64, unique=True, null=True, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)

    class Meta:
        ordering = ["title"]
        constraints = [
            models.CheckConstraint(name="product_price_non_negative", condition=models.Q(price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.title

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE
