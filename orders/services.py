"""Order services: checkout orchestration, status transitions and idempotency."""

import hashlib
import json
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Optional, Tuple

from cart.models import CartItem
from cart.selectors import cart_totals, coupon_is_active
from cart.services import lock_cart, reset_cart_contents
from common.choices import OrderStatus, PaymentStatus
from common.exceptions import EmptyCart, InvalidTransition, NotAuthorized, NotFound, OutOfStock, ProductUnavailable
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from inventory.selectors import is_available
from inventory.services import release_stock, reserve_stock

from .models import CUSTOMER_CANCELLABLE, IdempotencyKey, Order, OrderItem, OrderStatusEntry

logger = logging.getLogger("shopcore.orders")

ADDRESS_FIELDS = ("first_name", "last_name", "street", "city", "state", "zip_code", "country", "phone")


def _address(data: Optional[dict]) -> dict:
    data = data or {}
    return {name: data.get(name, "") for name in ADDRESS_FIELDS}


def _actor(user):
    return user if getattr(user, "pk", None) else None


@transaction.atomic
def checkout_cart(
    *,
    user,
    shipping: dict,
    payment: dict,
    billing: Optional[dict] = None,
    customer_note: str = "",
    metadata: Optional[dict] = None,
    expected_version: Optional[int] = None,
) -> Order:
    """Convert the user's cart into a pending order.

    Validates every line, snapshots totals, reserves stock per line and empties
    the cart. Any failure (including ``OutOfStock`` from a reservation racing
    another checkout) rolls back the order, all reservations and the cart.
    """

    cart = lock_cart(user=user, expected_version=expected_version)
    items = list(CartItem.objects.select_related("product").filter(cart=cart).order_by("id"))
    if not items:
        raise EmptyCart("Cannot check out an empty cart.")
    for item in items:
        if not item.product.is_active or not is_available(item.product, int(item.quantity)):
            raise ProductUnavailable(
                f"Product {item.product_id} is no longer available.", product_id=item.product_id
            )

    now = timezone.now()
    totals = cart_totals(cart=cart, now=now)
    gross = totals["subtotal"] + totals["shipping_cost"] + totals["tax_amount"]
    # Never let the discount push the order below zero
    discount = min(totals["discount_amount"], gross)
    total = gross - discount
    coupon_applied = coupon_is_active(cart, now=now)

    billing = billing or {}
    same_as_shipping = bool(billing.get("same_as_shipping", True))
    shipping_address = _address(shipping)
    billing_address = dict(shipping_address) if same_as_shipping else _address(billing)

    order = Order.objects.create(
        user=user,
        subtotal=totals["subtotal"],
        tax_rate=cart.tax_rate,
        tax_amount=totals["tax_amount"],
        shipping_method=cart.shipping_method,
        shipping_cost=totals["shipping_cost"],
        discount_code=cart.coupon_code if coupon_applied else "",
        discount_type=cart.coupon_type if coupon_applied else "",
        discount_amount=discount,
        total=total,
        shipping_address=shipping_address,
        billing_same_as_shipping=same_as_shipping,
        billing_address=billing_address,
        payment_method=payment["method"],
        payment_status=PaymentStatus.PENDING,
        payment_transaction_id=payment.get("transaction_id") or "",
        payment_amount=total,
        payment_currency=payment.get("currency") or getattr(settings, "ORDER_DEFAULT_CURRENCY", "USD"),
        customer_note=customer_note or "",
        metadata=metadata or {},
    )
    # Order numbers follow the primary-key sequence
    order.number = f"ORD-{int(order.id):06d}"
    order.save(update_fields=["number"])
    OrderStatusEntry.objects.create(order=order, status=Order.STATUS_PENDING, note="Order placed", actor=_actor(user))

    for item in items:
        try:
            reserved = reserve_stock(
                product_id=item.product_id,
                quantity=int(item.quantity),
                unit_price=item.unit_price,
                reference=order.number,
            )
        except OutOfStock:
            logger.warning(
                "checkout_out_of_stock",
                extra={"event": "checkout_out_of_stock", "user_id": user.id, "product_id": item.product_id},
            )
            raise
        OrderItem.objects.create(
            order=order,
            product=item.product,
            product_title=item.product.title,
            variant=item.variant,
            variant_key=item.variant_key,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
            reserved_quantity=reserved,
        )

    reset_cart_contents(cart, now=now)
    logger.info(
        "order_placed",
        extra={
            "event": "order_placed",
            "order_id": order.id,
            "order_number": order.number,
            "user_id": user.id,
            "cart_id": cart.id,
            "total": str(order.total),
            "item_count": totals["item_count"],
        },
    )
    return order


def _release_items(order: Order) -> None:
    for item in order.items.all():
        release_stock(
            product_id=item.product_id,
            quantity=int(item.quantity),
            reserved_quantity=int(item.reserved_quantity),
            unit_price=item.unit_price,
            reference=order.number or "",
        )


def _transition(order: Order, target: str, *, note: str, actor, tracking: Optional[dict] = None) -> Order:
    """Move a locked order to ``target``, applying compensations and recording history."""

    if not order.can_transition_to(target):
        raise InvalidTransition(
            f"Cannot move order from {order.status} to {target}.", current=order.status, target=target
        )
    previous = order.status
    fields = ["status", "updated_at"]
    if target == Order.STATUS_CANCELLED:
        _release_items(order)
    if target == Order.STATUS_REFUNDED:
        order.payment_status = PaymentStatus.REFUNDED
        fields.append("payment_status")
    if tracking:
        order.tracking = {**(order.tracking or {}), **tracking}
        fields.append("tracking")
    order.status = target
    order.save(update_fields=fields)
    OrderStatusEntry.objects.create(order=order, status=target, note=note or "", actor=_actor(actor))
    logger.info(
        "order_status_changed",
        extra={
            "event": "order_status_changed",
            "order_id": order.id,
            "user_id": order.user_id,
            "actor_id": getattr(actor, "pk", None),
            "status_from": previous,
            "status_to": target,
        },
    )
    return order


def _locked_order(order_id) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Order {order_id} not found.") from None


@transaction.atomic
def update_order_status(
    *, order_id: int, status: str, note: str = "", actor=None, tracking: Optional[dict] = None
) -> Order:
    """Privileged status change enforcing the transition table.

    Cancelling restores the stock reserved at checkout; refunding marks the
    payment refunded. Exactly one timeline entry is appended.
    """

    order = _locked_order(order_id)
    if status not in OrderStatus.values:
        raise InvalidTransition(f"Unknown status '{status}'.", current=order.status, target=status)
    return _transition(order, status, note=note, actor=actor, tracking=tracking)


@transaction.atomic
def cancel_order(*, order_id: int, user, reason: str = "") -> Order:
    """Customer-initiated cancellation of a pending or confirmed order."""

    order = _locked_order(order_id)
    if order.user_id != getattr(user, "pk", None) and not getattr(user, "is_staff", False):
        raise NotAuthorized("Not authorized to cancel this order.")
    if order.status not in CUSTOMER_CANCELLABLE:
        raise InvalidTransition(
            f"Order in status {order.status} can no longer be cancelled.",
            current=order.status,
            target=Order.STATUS_CANCELLED,
        )
    return _transition(order, Order.STATUS_CANCELLED, note=reason or "Cancelled by customer", actor=user)


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - Scope is derived from the caller: for authenticated users, "user:<id>"; otherwise "anon".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    - If the handler raises, the record is discarded so the key can be retried.
    """

    user_id = getattr(user, "id", None)
    scope = f"user:{user_id}" if user_id else "anon"
    method = str(method).upper()
    path = str(path)
    ttl_hours = getattr(settings, "IDEMPOTENCY_TTL_HOURS", 24)

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if user_id else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=ttl_hours),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            body = {"detail": "Idempotency key reused with different request payload", "code": "idempotency_conflict"}
            return body, 409
        if idem.response_json is not None and idem.response_code is not None:
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress", "code": "idempotency_in_progress"}, 409

    try:
        body, code = handler()
    except Exception:
        IdempotencyKey.objects.filter(id=idem.id).delete()
        raise

    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Canonical SHA256 of the request body (sorted-key JSON); None when empty."""

    if not data:
        return None
    try:
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return None
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def purge_expired_idempotency_keys(*, now=None) -> int:
    now = now or timezone.now()
    deleted, _ = IdempotencyKey.objects.filter(expires_at__lt=now).delete()
    return deleted
