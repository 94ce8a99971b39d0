"""Admin registration for cart models.

Provides admin interfaces for `Cart` and `CartItem`, with inline items on
the cart page for easier support.
"""

from django.contrib import admin, messages

from .models import Cart, CartItem
from .services import clear_cart, purge_expired_carts


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ("product", "variant", "quantity", "unit_price", "added_at")
    readonly_fields = ("added_at",)
    raw_id_fields = ("product",)


class CouponFilter(admin.SimpleListFilter):
    title = "coupon"
    parameter_name = "has_coupon"

    def lookups(self, request, model_admin):
        return (
            ("yes", "With coupon"),
            ("no", "Without coupon"),
        )

    def queryset(self, request, queryset):
        value = self.value()
        if value == "yes":
            return queryset.exclude(coupon_code="")
        if value == "no":
            return queryset.filter(coupon_code="")
        return queryset


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "coupon_code", "shipping_method", "version", "expires_at", "updated_at")
    list_filter = ("shipping_method", CouponFilter)
    search_fields = ("user__username", "user__email", "coupon_code")
    ordering = ("-updated_at",)
    readonly_fields = ("version", "tax_amount", "created_at", "updated_at")
    inlines = [CartItemInline]
    list_select_related = ("user",)

    @admin.action(description="Clear cart (items and coupon)")
    def action_clear_cart(self, request, queryset):
        count = 0
        for cart in queryset.select_related("user"):
            clear_cart(user=cart.user)
            count += 1
        messages.success(request, f"Cleared {count} cart(s).")

    @admin.action(description="Purge all expired carts")
    def action_purge_expired(self, request, queryset):
        count = purge_expired_carts()
        messages.success(request, f"Deleted {count} expired cart(s).")

    actions = [
        "action_clear_cart",
        "action_purge_expired",
    ]


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "product", "quantity", "unit_price", "added_at")
    search_fields = ("product__sku", "product__title", "cart__user__email")
    ordering = ("id",)
    raw_id_fields = ("cart", "product")


# EOF
