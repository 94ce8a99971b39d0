"""Cart services: locked, versioned mutations of the user's cart."""

import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from catalog.models import Product
from common.exceptions import (
    CommerceError,
    ConcurrencyConflict,
    EmptyCart,
    InvalidCoupon,
    InvalidQuantity,
    InvalidShippingMethod,
    NotFound,
    OutOfStock,
    ProductUnavailable,
)
from coupons.lookup import normalize_code, validate_coupon
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from inventory.selectors import is_available

from .models import Cart, CartItem
from .selectors import cart_subtotal
from .variants import canonical_variant, variant_key

logger = logging.getLogger("shopcore.cart")

CENT = Decimal("0.01")
DEFAULT_SHIPPING_METHODS = {"standard": "0.00", "express": "15.00", "overnight": "30.00"}


def shipping_methods() -> dict:
    return getattr(settings, "SHIPPING_METHODS", DEFAULT_SHIPPING_METHODS)


def _max_quantity() -> int:
    return int(getattr(settings, "CART_MAX_ITEM_QUANTITY", 100))


def lock_cart(*, user, expected_version: int | None = None) -> Cart:
    """Fetch (or create) and row-lock the user's cart. Call inside a transaction."""

    cart, _ = Cart.objects.select_for_update().get_or_create(user=user)
    if expected_version is not None and int(expected_version) != cart.version:
        raise ConcurrencyConflict(
            f"Cart version {expected_version} is stale.",
            current_version=cart.version,
        )
    return cart


def _touch(cart: Cart, *fields: str, now=None) -> Cart:
    """Refresh derived tax, slide expiry, bump version and persist."""

    now = now or timezone.now()
    subtotal = cart_subtotal(cart)
    cart.tax_amount = (subtotal * cart.tax_rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)
    cart.expires_at = now + timedelta(days=getattr(settings, "CART_TTL_DAYS", 30))
    cart.version += 1
    cart.save(update_fields=[*fields, "tax_amount", "expires_at", "version", "updated_at"])
    return cart


def _log(event: str, cart: Cart, **extra) -> None:
    logger.info(
        event,
        extra={"event": event, "cart_id": cart.id, "user_id": cart.user_id, "version": cart.version, **extra},
    )


def _clear_coupon(cart: Cart) -> None:
    cart.coupon_code = ""
    cart.coupon_discount = Decimal("0.00")
    cart.coupon_type = ""
    cart.coupon_applied_at = None
    cart.coupon_expires_at = None


COUPON_FIELDS = ("coupon_code", "coupon_discount", "coupon_type", "coupon_applied_at", "coupon_expires_at")


def reset_cart_contents(cart: Cart, *, now=None) -> Cart:
    """Empty items and coupon of an already locked cart, keeping the row."""

    CartItem.objects.filter(cart=cart).delete()
    _clear_coupon(cart)
    return _touch(cart, *COUPON_FIELDS, now=now)


@transaction.atomic
def add_item(*, user, product_id: int, quantity: int, variant: dict | None = None, expected_version=None) -> Cart:
    """Add a product to the cart, merging into an identical line when present.

    A merged line keeps its original price snapshot; availability and the
    per-line maximum are checked against the merged quantity.
    """

    if int(quantity) < 1:
        raise InvalidQuantity("Quantity must be at least 1.")
    try:
        product = Product.objects.get(pk=product_id)
    except Product.DoesNotExist:
        raise NotFound(f"Product {product_id} not found.") from None
    if not product.is_active:
        raise ProductUnavailable(f"Product {product_id} is not available.", product_id=product.id)

    cart = lock_cart(user=user, expected_version=expected_version)
    key = variant_key(variant)
    item = CartItem.objects.select_for_update().filter(cart=cart, product=product, variant_key=key).first()
    new_quantity = int(quantity) + (int(item.quantity) if item else 0)
    if new_quantity > _max_quantity():
        raise InvalidQuantity(f"At most {_max_quantity()} units per line.")
    if not is_available(product, new_quantity):
        raise OutOfStock(f"Not enough inventory for product {product.id}.", product_id=product.id)

    now = timezone.now()
    if item is not None:
        item.quantity = new_quantity
        item.added_at = now
        item.save(update_fields=["quantity", "added_at"])
        event = "cart.item_updated"
    else:
        CartItem.objects.create(
            cart=cart,
            product=product,
            variant=canonical_variant(variant),
            variant_key=key,
            quantity=new_quantity,
            unit_price=product.price or Decimal("0.00"),
            added_at=now,
        )
        event = "cart.item_added"
    _touch(cart, now=now)
    _log(event, cart, product_id=product.id, quantity=new_quantity)
    return cart


@transaction.atomic
def set_item_quantity(*, user, item_id: int, quantity: int, expected_version=None) -> Cart:
    """Set a line's quantity; zero removes the line."""

    if int(quantity) < 0:
        raise InvalidQuantity("Quantity cannot be negative.")
    cart = lock_cart(user=user, expected_version=expected_version)
    item = CartItem.objects.select_for_update().select_related("product").filter(id=item_id, cart=cart).first()
    if item is None:
        raise NotFound(f"Cart item {item_id} not found.")

    if int(quantity) == 0:
        item.delete()
        _touch(cart)
        _log("cart.item_removed", cart, item_id=item_id)
        return cart

    if int(quantity) > _max_quantity():
        raise InvalidQuantity(f"At most {_max_quantity()} units per line.")
    if not is_available(item.product, int(quantity)):
        raise OutOfStock(f"Not enough inventory for product {item.product_id}.", product_id=item.product_id)
    item.quantity = int(quantity)
    item.save(update_fields=["quantity"])
    _touch(cart)
    _log("cart.item_updated", cart, item_id=item_id, quantity=item.quantity)
    return cart


@transaction.atomic
def remove_item(*, user, item_id: int, expected_version=None) -> Cart:
    """Remove a line from the cart; absent lines are a no-op."""

    cart = lock_cart(user=user, expected_version=expected_version)
    deleted, _ = CartItem.objects.filter(id=item_id, cart=cart).delete()
    if not deleted:
        return cart
    _touch(cart)
    _log("cart.item_removed", cart, item_id=item_id)
    return cart


@transaction.atomic
def apply_coupon(*, user, code: str, lookup=None, expected_version=None) -> Cart:
    """Validate ``code`` and attach it to the cart, replacing any previous coupon."""

    now = timezone.now()
    rule = validate_coupon(code, lookup=lookup, now=now)
    if rule is None:
        raise InvalidCoupon(f"Coupon '{normalize_code(code)}' is not valid.")
    cart = lock_cart(user=user, expected_version=expected_version)
    if not cart.items.exists():
        raise EmptyCart("Cannot apply a coupon to an empty cart.")

    cart.coupon_code = rule.code
    cart.coupon_discount = Decimal(rule.discount_value)
    cart.coupon_type = rule.discount_type
    cart.coupon_applied_at = now
    cart.coupon_expires_at = rule.expires_at or now + timedelta(hours=getattr(settings, "COUPON_HOLD_HOURS", 24))
    _touch(cart, *COUPON_FIELDS, now=now)
    _log("cart.coupon_applied", cart, code=rule.code)
    return cart


@transaction.atomic
def remove_coupon(*, user, expected_version=None) -> Cart:
    cart = lock_cart(user=user, expected_version=expected_version)
    if not cart.coupon_code:
        return cart
    code = cart.coupon_code
    _clear_coupon(cart)
    _touch(cart, *COUPON_FIELDS)
    _log("cart.coupon_removed", cart, code=code)
    return cart


@transaction.atomic
def set_shipping_and_tax(*, user, shipping_method: str | None = None, tax_rate=None, expected_version=None) -> Cart:
    """Select a shipping method (cost from ``SHIPPING_METHODS``) and/or a tax rate percent."""

    methods = shipping_methods()
    if shipping_method is not None and shipping_method not in methods:
        raise InvalidShippingMethod(f"Unknown shipping method '{shipping_method}'.")
    if tax_rate is not None:
        tax_rate = Decimal(str(tax_rate))
        if not Decimal("0") <= tax_rate <= Decimal("100"):
            raise CommerceError("Tax rate must be between 0 and 100.")

    cart = lock_cart(user=user, expected_version=expected_version)
    fields = []
    if shipping_method is not None:
        cart.shipping_method = shipping_method
        cart.shipping_cost = Decimal(str(methods[shipping_method]))
        fields += ["shipping_method", "shipping_cost"]
    if tax_rate is not None:
        cart.tax_rate = tax_rate
        fields.append("tax_rate")
    _touch(cart, *fields)
    _log("cart.pricing_updated", cart, shipping_method=cart.shipping_method, tax_rate=str(cart.tax_rate))
    return cart


@transaction.atomic
def clear_cart(*, user, expected_version=None) -> Cart:
    """Empty the cart's items and coupon; shipping and tax selections stay."""

    cart = lock_cart(user=user, expected_version=expected_version)
    reset_cart_contents(cart)
    _log("cart.cleared", cart)
    return cart


@transaction.atomic
def purge_expired_carts(*, now=None) -> int:
    """Delete carts whose ``expires_at`` has passed. Returns the number removed."""

    now = now or timezone.now()
    # Carts locked by an in-flight mutation are skipped; that mutation slides their expiry
    ids = list(
        Cart.objects.select_for_update(skip_locked=True).filter(expires_at__lte=now).values_list("id", flat=True)
    )
    _, per_model = Cart.objects.filter(id__in=ids, expires_at__lte=now).delete()
    count = per_model.get(Cart._meta.label, 0)
    logger.info("cart.expired_purged", extra={"event": "cart.expired_purged", "count": count})
    return count
