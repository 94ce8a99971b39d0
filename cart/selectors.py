"""Selectors for read-only cart queries."""

from decimal import ROUND_HALF_UP, Decimal

from common.choices import DiscountType
from django.utils import timezone

from .models import Cart

CENT = Decimal("0.01")


def get_cart_for_user(*, user) -> Cart:
    """Return the user's cart, creating it if missing."""

    cart, _ = Cart.objects.get_or_create(user=user)
    return cart


def cart_subtotal(cart: Cart) -> Decimal:
    return sum((item.line_total for item in cart.items.all()), Decimal("0.00"))


def coupon_is_active(cart: Cart, *, now=None) -> bool:
    if not cart.coupon_code:
        return False
    now = now or timezone.now()
    return cart.coupon_expires_at is None or now < cart.coupon_expires_at


def coupon_discount_amount(cart: Cart, subtotal: Decimal, *, now=None) -> Decimal:
    """Discount granted by the applied coupon; zero when absent or expired."""

    if not coupon_is_active(cart, now=now):
        return Decimal("0.00")
    if cart.coupon_type == DiscountType.PERCENTAGE:
        amount = subtotal * cart.coupon_discount / Decimal("100")
    else:
        amount = cart.coupon_discount
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def cart_totals(*, cart: Cart, now=None) -> dict:
    """Compute cart totals from items, coupon, shipping and tax.

    ``total`` is not clamped here; checkout clamps the discount.
    """

    items = list(cart.items.all())
    subtotal = sum((item.line_total for item in items), Decimal("0.00"))
    discount = coupon_discount_amount(cart, subtotal, now=now)
    total = subtotal + cart.shipping_cost + cart.tax_amount - discount
    return {
        "subtotal": subtotal,
        "discount_amount": discount,
        "shipping_cost": cart.shipping_cost,
        "tax_amount": cart.tax_amount,
        "total": total,
        "item_count": sum(int(item.quantity) for item in items),
    }
