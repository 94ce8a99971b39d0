"""Order app models.

An order is an immutable snapshot of a checked-out cart. After creation only
its status (and the payment/tracking blocks that follow status) changes, and
every change appends to the ``timeline``.
"""

from decimal import Decimal

from common.choices import DiscountType, OrderStatus, PaymentMethod, PaymentStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),
}

CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}


class Order(TimeStampedModel):
    """Purchase order capturing a snapshot of a user's checkout.

    Totals are denormalized to support reporting and auditability.
    """

    STATUS_PENDING = OrderStatus.PENDING
    STATUS_CONFIRMED = OrderStatus.CONFIRMED
    STATUS_PROCESSING = OrderStatus.PROCESSING
    STATUS_SHIPPED = OrderStatus.SHIPPED
    STATUS_DELIVERED = OrderStatus.DELIVERED
    STATUS_CANCELLED = OrderStatus.CANCELLED
    STATUS_REFUNDED = OrderStatus.REFUNDED
    STATUS_CHOICES = OrderStatus.choices

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="orders", on_delete=models.PROTECT)
    number = models.CharField(max_length=32, unique=True, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_method = models.CharField(max_length=32, default="standard")
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_code = models.CharField(max_length=40, blank=True, default="")
    discount_type = models.CharField(max_length=16, choices=DiscountType.choices, blank=True, default="")
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    shipping_address = models.JSONField(default=dict)
    billing_same_as_shipping = models.BooleanField(default=True)
    billing_address = models.JSONField(default=dict)
    tracking = models.JSONField(default=dict, blank=True)

    payment_method = models.CharField(max_length=32, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=24, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    payment_transaction_id = models.CharField(max_length=128, blank=True, default="")
    payment_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_currency = models.CharField(max_length=3, default="USD")

    customer_note = models.TextField(blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["user", "status", "created_at"], name="order_user_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="order_total_non_negative", condition=models.Q(total__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order#{self.id} user={self.user_id} status={self.status}"

    def can_transition_to(self, status: str) -> bool:
        return status in ALLOWED_TRANSITIONS.get(self.status, set())


class OrderItem(models.Model):
    """Line item within an order.

    Snapshots product title, variant and unit price at checkout, plus the
    units actually taken from stock so cancellation can restore them exactly.
    """

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="order_items", on_delete=models.PROTECT)
    product_title = models.CharField(max_length=200, blank=True)
    variant = models.JSONField(null=True, blank=True)
    variant_key = models.CharField(max_length=64, blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    reserved_quantity = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["order", "product"], name="orderitem_order_product_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="orderitem_price_non_negative", condition=models.Q(unit_price__gte=0)),
            models.CheckConstraint(name="orderitem_quantity_positive", condition=models.Q(quantity__gte=1)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderItem#{self.id} order={self.order_id} product={self.product_id} qty={self.quantity}"


class OrderStatusEntry(models.Model):
    """Append-only status history entry."""

    order = models.ForeignKey(Order, related_name="timeline", on_delete=models.CASCADE)
    status = models.CharField(max_length=16, choices=OrderStatus.choices)
    note = models.CharField(max_length=500, blank=True, default="")
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        verbose_name_plural = "order status entries"

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.order_id}: {self.status}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Order timeline entries are append-only")
        super().save(*args, **kwargs)


class IdempotencyKey(TimeStampedModel):
    """Stores idempotent request results to prevent duplicate processing."""

    key = models.CharField(max_length=128)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE)
    scope = models.CharField(max_length=128)
    path = models.CharField(max_length=255)
    method = models.CharField(max_length=16)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    response_code = models.IntegerField(null=True, blank=True)
    response_json = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["key", "scope", "path", "method"], name="uniq_idem_scope_path_method"),
        ]
