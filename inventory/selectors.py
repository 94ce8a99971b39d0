"""Selectors for inventory domain (single-location)."""

from django.db.models import F

from .models import StockItem

AVAILABILITY_IN_STOCK = "in-stock"
AVAILABILITY_BACKORDER = "backorder"
AVAILABILITY_OUT_OF_STOCK = "out-of-stock"


def stock_for_product(product_id: int) -> StockItem | None:
    return StockItem.objects.filter(product_id=product_id).first()


def is_available(product, quantity: int = 1) -> bool:
    """True if tracking is off, enough units are on hand, or backorders are allowed.

    A product with no stock row is treated as tracked with nothing on hand.
    """
    stock = stock_for_product(product.id)
    if stock is None:
        return False
    if not stock.track_inventory:
        return True
    if stock.quantity >= quantity:
        return True
    return stock.allow_backorder


def availability(product) -> str:
    stock = stock_for_product(product.id)
    if stock is None:
        return AVAILABILITY_OUT_OF_STOCK
    if not stock.track_inventory or stock.quantity > 0:
        return AVAILABILITY_IN_STOCK
    if stock.allow_backorder:
        return AVAILABILITY_BACKORDER
    return AVAILABILITY_OUT_OF_STOCK


def low_stock_items():
    return StockItem.objects.select_related("product").filter(
        track_inventory=True, quantity__lte=F("low_stock_threshold")
    )


# EOF
