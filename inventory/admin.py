"""Admin registrations for inventory app."""

from django.contrib import admin

from .models import StockItem, StockMovement
from .services import apply_movement


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "track_inventory", "quantity", "allow_backorder", "total_sold", "updated_at")
    list_filter = ("track_inventory", "allow_backorder")
    search_fields = ("product__sku", "product__title")
    readonly_fields = ("total_sold", "total_revenue")

    def save_model(self, request, obj, form, change):
        """Persist settings directly; route quantity changes through the movement ledger."""

        target = int(obj.quantity or 0)
        previous = int(form.initial.get("quantity") or 0) if change else 0
        # Keep whatever is on hand now; only the edited delta goes through the ledger
        obj.quantity = StockItem.objects.values_list("quantity", flat=True).get(pk=obj.pk) if change else 0
        super().save_model(request, obj, form, change)
        delta = target - previous
        if delta:
            apply_movement(
                product_id=obj.product_id,
                movement_type=StockMovement.TYPE_ADJUST,
                quantity=delta,
                reason=f"admin adjustment by {request.user}",
            )
            obj.refresh_from_db(fields=["quantity"])


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("id", "stock_item", "movement_type", "quantity", "reason", "reference", "created_at")
    list_filter = ("movement_type",)
    search_fields = ("stock_item__product__sku", "reference")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# EOF
