from django.contrib import admin

from .models import IdempotencyKey, Order, OrderItem, OrderStatusEntry


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ("product", "product_title", "variant", "quantity", "unit_price", "line_total", "reserved_quantity")
    readonly_fields = fields


class OrderStatusEntryInline(admin.TabularInline):
    """Timeline is append-only; status changes go through the API/services."""

    model = OrderStatusEntry
    extra = 0
    can_delete = False
    fields = ("status", "note", "actor", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "status", "payment_status", "user", "total", "created_at")
    list_filter = ("status", "payment_status", "payment_method", "created_at")
    search_fields = ("number", "user__email", "user__username")
    date_hierarchy = "created_at"
    # Everything but tracking is frozen at checkout; status moves through the services
    readonly_fields = (
        "number",
        "user",
        "status",
        "subtotal",
        "tax_rate",
        "tax_amount",
        "shipping_method",
        "shipping_cost",
        "discount_code",
        "discount_type",
        "discount_amount",
        "total",
        "shipping_address",
        "billing_same_as_shipping",
        "billing_address",
        "payment_method",
        "payment_status",
        "payment_transaction_id",
        "payment_amount",
        "payment_currency",
        "customer_note",
        "metadata",
    )
    inlines = [OrderItemInline, OrderStatusEntryInline]
    list_select_related = ("user",)

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(OrderStatusEntry)
class OrderStatusEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "status", "actor", "created_at")
    list_filter = ("status",)
    search_fields = ("order__number", "note")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "expires_at", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
