"""Inventory models (single-location, focused).

Tracks on-hand stock per product plus the cumulative sold/revenue counters
that checkout increments and cancellation reverses.
"""

from decimal import Decimal

from common.choices import MovementType
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StockItem(TimeStampedModel):
    product = models.OneToOneField("catalog.Product", related_name="stock", on_delete=models.CASCADE)
    track_inventory = models.BooleanField(default=True)
    quantity = models.IntegerField(default=0)
    allow_backorder = models.BooleanField(default=False)
    low_stock_threshold = models.IntegerField(default=5)
    total_sold = models.IntegerField(default=0)
    total_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["-updated_at", "id"]
        constraints = [
            models.CheckConstraint(name="stock_non_negative", condition=models.Q(quantity__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"StockItem<{self.product_id}> q={self.quantity} sold={self.total_sold}"

    @property
    def is_low(self) -> bool:
        return self.track_inventory and self.quantity <= self.low_stock_threshold


class StockMovement(TimeStampedModel):
    TYPE_INBOUND = MovementType.INBOUND
    TYPE_OUTBOUND = MovementType.OUTBOUND
    TYPE_ADJUST = MovementType.ADJUST
    TYPE_CHOICES = MovementType.choices

    stock_item = models.ForeignKey(StockItem, on_delete=models.CASCADE, related_name="movements")
    movement_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    quantity = models.IntegerField()  # signed: +inbound, -outbound
    reason = models.CharField(max_length=200, blank=True)
    reference = models.CharField(max_length=120, blank=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(name="movement_non_zero", condition=~models.Q(quantity=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.movement_type} {self.quantity} for {self.stock_item_id}"


# EOF
