"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "sku", "price", "status", "updated_at")
    search_fields = ("title", "slug", "sku")
    list_filter = ("status",)
    prepopulated_fields = {"slug": ("title",)}
