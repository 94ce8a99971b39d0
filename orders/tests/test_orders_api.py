from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest
from cart.tests.factories import UserFactory
from django.core.management import call_command
from django.utils import timezone
from inventory.models import StockItem
from inventory.tests.factories import StockItemFactory
from orders.models import IdempotencyKey, Order
from rest_framework.test import APIClient

from .factories import SHIPPING, OrderFactory, place_order

CHECKOUT_URL = "/api/v1/cart/checkout/"


def _client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def _checkout_payload(**overrides):
    payload = {"shipping_address": dict(SHIPPING), "payment": {"method": "credit_card"}}
    payload.update(overrides)
    return payload


def _fill_cart(client, *, quantity=2, stock=10, price="50.00"):
    product = StockItemFactory(quantity=stock, product__price=Decimal(price)).product
    resp = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": quantity}, format="json")
    assert resp.status_code == 201
    return product


@pytest.mark.django_db
def test_checkout_endpoint_creates_order():
    user = UserFactory()
    client = _client(user)
    _fill_cart(client)

    resp = client.post(CHECKOUT_URL, _checkout_payload(), format="json")

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["number"].startswith("ORD-")
    assert body["total"] == "100.00"
    assert body["payment"]["method"] == "credit_card"
    assert body["discount"] == {"code": "", "type": "", "amount": "0.00"}
    assert [e["status"] for e in body["timeline"]] == ["pending"]
    assert client.get("/api/v1/cart/").json()["items"] == []


@pytest.mark.django_db
def test_checkout_validation_and_empty_cart():
    client = _client(UserFactory())

    missing = client.post(CHECKOUT_URL, {"payment": {"method": "credit_card"}}, format="json")
    assert missing.status_code == 400

    empty = client.post(CHECKOUT_URL, _checkout_payload(), format="json")
    assert empty.status_code == 400
    assert empty.json()["code"] == "empty_cart"
    assert Order.objects.count() == 0


@pytest.mark.django_db
def test_checkout_unavailable_returns_409_with_product():
    client = _client(UserFactory())
    product = _fill_cart(client, quantity=2, stock=2)
    StockItem.objects.filter(product=product).update(quantity=1)

    resp = client.post(CHECKOUT_URL, _checkout_payload(), format="json")

    assert resp.status_code == 409
    assert resp.json()["code"] == "product_unavailable"
    assert resp.json()["product_id"] == product.id


@pytest.mark.django_db
def test_checkout_is_idempotent_with_header():
    user = UserFactory()
    client = _client(user)
    _fill_cart(client)
    key = "abc-idem-123"

    r1 = client.post(CHECKOUT_URL, _checkout_payload(), format="json", HTTP_IDEMPOTENCY_KEY=key)
    r2 = client.post(CHECKOUT_URL, _checkout_payload(), format="json", HTTP_IDEMPOTENCY_KEY=key)

    assert r1.status_code == 201
    assert r2.status_code == 201
    assert r2.json() == r1.json()
    assert Order.objects.filter(user=user).count() == 1
    idem = IdempotencyKey.objects.get(key=key, user=user, path=CHECKOUT_URL, method="POST")
    assert idem.response_code == 201
    assert idem.expires_at > timezone.now()


@pytest.mark.django_db
def test_idempotency_key_reused_with_other_payload_conflicts():
    client = _client(UserFactory())
    _fill_cart(client)
    key = "reuse-1"

    client.post(CHECKOUT_URL, _checkout_payload(), format="json", HTTP_IDEMPOTENCY_KEY=key)
    resp = client.post(
        CHECKOUT_URL, _checkout_payload(customer_note="different"), format="json", HTTP_IDEMPOTENCY_KEY=key
    )

    assert resp.status_code == 409
    assert resp.json()["code"] == "idempotency_conflict"


@pytest.mark.django_db
def test_idempotent_error_response_is_replayed():
    client = _client(UserFactory())
    key = "empty-1"

    r1 = client.post(CHECKOUT_URL, _checkout_payload(), format="json", HTTP_IDEMPOTENCY_KEY=key)
    _fill_cart(client)
    r2 = client.post(CHECKOUT_URL, _checkout_payload(), format="json", HTTP_IDEMPOTENCY_KEY=key)

    assert r1.status_code == r2.status_code == 400
    assert r2.json()["code"] == "empty_cart"
    assert Order.objects.count() == 0


@pytest.mark.django_db
def test_cleanup_idempotency_command_removes_expired_rows():
    user = UserFactory()
    IdempotencyKey.objects.create(
        key="old", user=user, scope=f"user:{user.id}", path="/x/", method="POST",
        expires_at=timezone.now() - timedelta(hours=1),
    )
    IdempotencyKey.objects.create(
        key="new", user=user, scope=f"user:{user.id}", path="/x/", method="POST",
        expires_at=timezone.now() + timedelta(hours=1),
    )
    out = StringIO()

    call_command("cleanup_idempotency", stdout=out)

    assert "Deleted 1 expired idempotency keys." in out.getvalue()
    assert list(IdempotencyKey.objects.values_list("key", flat=True)) == ["new"]


@pytest.mark.django_db
def test_list_and_detail_only_show_own_orders():
    mine, _ = place_order()
    theirs, _ = place_order()
    client = _client(mine.user)

    listing = client.get("/api/v1/orders/")
    assert listing.status_code == 200
    assert [o["id"] for o in listing.json()["results"]] == [mine.id]

    assert client.get(f"/api/v1/orders/{mine.id}/").status_code == 200
    assert client.get(f"/api/v1/orders/{theirs.id}/").status_code == 404


@pytest.mark.django_db
def test_list_filters_by_status():
    user = UserFactory()
    first, _ = place_order(user=user)
    second, _ = place_order(user=user)
    client = _client(user)
    client.post(f"/api/v1/orders/{first.id}/cancel/", {}, format="json")

    resp = client.get("/api/v1/orders/", {"status": "cancelled"})

    assert [o["id"] for o in resp.json()["results"]] == [first.id]
    assert second.status == "pending"


@pytest.mark.django_db
def test_cancel_endpoint_errors():
    order, _ = place_order()
    owner = _client(order.user)
    stranger = _client(UserFactory())

    forbidden = stranger.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "not_authorized"

    ok = owner.post(f"/api/v1/orders/{order.id}/cancel/", {"reason": "oops"}, format="json")
    assert ok.status_code == 200
    assert ok.json()["status"] == "cancelled"

    again = owner.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_transition"
    assert again.json()["current"] == "cancelled"

    missing = owner.post("/api/v1/orders/999999/cancel/", {}, format="json")
    assert missing.status_code == 404


@pytest.mark.django_db
def test_status_update_is_staff_only():
    order, _ = place_order()
    staff = _client(UserFactory(is_staff=True))
    customer = _client(order.user)

    denied = customer.post(f"/api/v1/orders/{order.id}/status/", {"status": "confirmed"}, format="json")
    assert denied.status_code == 403

    resp = staff.post(
        f"/api/v1/orders/{order.id}/status/",
        {"status": "confirmed", "note": "Payment verified"},
        format="json",
    )
    assert resp.status_code == 200
    assert resp.json()["timeline"][-1]["note"] == "Payment verified"

    bad = staff.post(f"/api/v1/orders/{order.id}/status/", {"status": "delivered"}, format="json")
    assert bad.status_code == 409
    assert bad.json()["code"] == "invalid_transition"


@pytest.mark.django_db
def test_staff_can_view_any_order_detail():
    order, _ = place_order()
    staff = _client(UserFactory(is_staff=True))

    resp = staff.get(f"/api/v1/orders/{order.id}/")

    assert resp.status_code == 200
    assert resp.json()["number"] == order.number


@pytest.mark.django_db
def test_admin_list_filters_by_customer_and_status():
    alice = UserFactory(email="alice@example.com")
    a1 = OrderFactory(user=alice)
    OrderFactory(user=alice, status=Order.STATUS_SHIPPED)
    OrderFactory()
    staff = _client(UserFactory(is_staff=True))

    by_customer = staff.get("/api/v1/orders/admin/", {"customer": alice.id})
    assert by_customer.status_code == 200
    assert by_customer.json()["count"] == 2

    by_status = staff.get("/api/v1/orders/admin/", {"customer": alice.id, "status": "pending"})
    assert [o["id"] for o in by_status.json()["results"]] == [a1.id]

    by_email = staff.get("/api/v1/orders/admin/", {"email": "ALICE@example.com"})
    assert by_email.json()["count"] == 2

    assert _client(alice).get("/api/v1/orders/admin/").status_code == 403


@pytest.mark.django_db
def test_admin_stats_endpoint():
    OrderFactory(total=Decimal("10.00"))
    OrderFactory(total=Decimal("30.00"))
    staff = _client(UserFactory(is_staff=True))

    resp = staff.get("/api/v1/orders/admin/stats/")

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_orders"] == 2
    assert body["total_revenue"] == "40.00"
    assert body["average_order_value"] == "20.00"
    assert body["by_status"]["pending"]["count"] == 2

    bad = staff.get("/api/v1/orders/admin/stats/", {"start": "not-a-date"})
    assert bad.status_code == 400


@pytest.mark.django_db
def test_impossible_dates_are_rejected_with_400():
    order, _ = place_order()
    staff = _client(UserFactory(is_staff=True))
    customer = _client(order.user)

    stats = staff.get("/api/v1/orders/admin/stats/", {"start": "2024-13-01T00:00:00"})
    assert stats.status_code == 400
    assert "start" in stats.json()

    listing = customer.get("/api/v1/orders/", {"end": "2024-02-30T00:00:00"})
    assert listing.status_code == 400
    assert "end" in listing.json()

    admin_listing = staff.get("/api/v1/orders/admin/", {"start": "2024-13-01T00:00:00"})
    assert admin_listing.status_code == 400


@pytest.mark.django_db
def test_customer_list_date_and_number_filters():
    user = UserFactory()
    first, _ = place_order(user=user)
    place_order(user=user)
    client = _client(user)

    by_number = client.get("/api/v1/orders/", {"number": first.number})
    assert [o["id"] for o in by_number.json()["results"]] == [first.id]

    future = (timezone.now() + timedelta(days=1)).isoformat()
    later = client.get("/api/v1/orders/", {"start": future})
    assert later.status_code == 200
    assert later.json()["results"] == []


@pytest.mark.django_db
def test_stats_accepts_valid_bounds():
    OrderFactory(total=Decimal("10.00"))
    staff = _client(UserFactory(is_staff=True))
    past = (timezone.now() - timedelta(days=1)).isoformat()

    resp = staff.get("/api/v1/orders/admin/stats/", {"start": past})

    assert resp.status_code == 200
    assert resp.json()["total_orders"] == 1
