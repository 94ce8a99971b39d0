"""Inventory services (single-location): transactional stock movements.

Every write locks the product's stock row, so reservations against the same
product are serialized while different products proceed independently.
"""

import logging
from decimal import Decimal

from common.exceptions import ConcurrencyConflict, OutOfStock
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import StockItem, StockMovement

logger = logging.getLogger("shopcore.inventory")


class MovementError(Exception):
    pass


def _locked_stock(product_id: int) -> StockItem:
    # Ensure a stock item exists for the product
    item, _ = StockItem.objects.select_for_update().get_or_create(product_id=product_id)
    return item


@transaction.atomic
def apply_movement(*, product_id: int, movement_type: str, quantity: int, reason: str = "", reference: str = ""):
    """Apply a signed manual movement (restock, write-off, count correction).

    quantity: positive for inbound/additions, negative for outbound/deductions.
    movement_type: label for admin/documentation; logic is driven by sign.
    """
    if quantity == 0:
        return None
    item = _locked_stock(product_id)
    if quantity < 0 and abs(quantity) > int(item.quantity):
        raise MovementError("Insufficient quantity on hand")
    StockItem.objects.filter(pk=item.pk).update(quantity=F("quantity") + quantity, updated_at=timezone.now())
    movement = StockMovement.objects.create(
        stock_item=item,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        reference=reference,
    )
    logger.info(
        "inventory.adjusted",
        extra={"event": "inventory.adjusted", "product_id": product_id, "quantity": quantity, "reason": reason},
    )
    return movement


@transaction.atomic
def reserve_stock(*, product_id: int, quantity: int, unit_price: Decimal, reference: str = "") -> int:
    """Commit stock to an order and bump the sold/revenue counters.

    Returns the number of units actually taken from stock: the full quantity
    when covered, whatever is left when backordering (floor of zero), and zero
    for untracked products. Raises ``OutOfStock`` when none of those apply.
    """
    if quantity <= 0:
        raise MovementError("Reservation quantity must be positive")
    item = _locked_stock(product_id)
    if not item.track_inventory:
        taken = 0
    elif item.quantity >= quantity:
        taken = quantity
    elif item.allow_backorder:
        taken = int(item.quantity)
    else:
        raise OutOfStock(f"Not enough inventory for product {product_id}.", product_id=product_id)

    # Conditional decrement: never drives quantity below zero
    updated = StockItem.objects.filter(pk=item.pk, quantity__gte=taken).update(
        quantity=F("quantity") - taken,
        total_sold=F("total_sold") + quantity,
        total_revenue=F("total_revenue") + unit_price * quantity,
        updated_at=timezone.now(),
    )
    if not updated:
        raise ConcurrencyConflict(f"Stock for product {product_id} changed during reservation.")
    if taken:
        StockMovement.objects.create(
            stock_item=item,
            movement_type=StockMovement.TYPE_OUTBOUND,
            quantity=-taken,
            reason="order reservation",
            reference=reference,
        )

    item.refresh_from_db(fields=["quantity"])
    logger.info(
        "inventory.reserved",
        extra={
            "event": "inventory.reserved",
            "product_id": product_id,
            "quantity": quantity,
            "taken": taken,
            "remaining": item.quantity,
            "reference": reference,
        },
    )
    if item.is_low:
        logger.warning(
            "inventory.low_stock",
            extra={
                "event": "inventory.low_stock",
                "product_id": product_id,
                "remaining": item.quantity,
                "threshold": item.low_stock_threshold,
            },
        )
    return taken


@transaction.atomic
def release_stock(
    *, product_id: int, quantity: int, reserved_quantity: int, unit_price: Decimal, reference: str = ""
) -> None:
    """Reverse a reservation: restore the units taken and unwind the counters."""

    if quantity <= 0 or reserved_quantity < 0:
        raise MovementError("Release quantities must be positive")
    item = _locked_stock(product_id)
    StockItem.objects.filter(pk=item.pk).update(
        quantity=F("quantity") + reserved_quantity,
        total_sold=F("total_sold") - quantity,
        total_revenue=F("total_revenue") - unit_price * quantity,
        updated_at=timezone.now(),
    )
    if reserved_quantity:
        StockMovement.objects.create(
            stock_item=item,
            movement_type=StockMovement.TYPE_INBOUND,
            quantity=reserved_quantity,
            reason="order cancellation",
            reference=reference,
        )
    logger.info(
        "inventory.released",
        extra={
            "event": "inventory.released",
            "product_id": product_id,
            "quantity": quantity,
            "restored": reserved_quantity,
            "reference": reference,
        },
    )


# EOF
