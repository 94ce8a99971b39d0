from decimal import Decimal

import pytest
from cart.models import Cart
from django.db import OperationalError
from inventory.tests.factories import StockItemFactory
from rest_framework.test import APIClient

from .factories import UserFactory


@pytest.fixture
def client_user():
    user = UserFactory()
    client = APIClient()
    client.force_authenticate(user=user)
    return client, user


@pytest.fixture
def product():
    return StockItemFactory(quantity=10, product__price=Decimal("50.00")).product


def test_cart_requires_authentication(db):
    resp = APIClient().get("/api/v1/cart/")
    assert resp.status_code in (401, 403)


@pytest.mark.django_db
def test_get_cart_returns_empty_cart_with_totals(client_user):
    client, _ = client_user

    resp = client.get("/api/v1/cart/")

    assert resp.status_code == 200
    body = resp.json()
    assert body["items"] == []
    assert body["coupon"] is None
    assert body["version"] == 0
    assert body["total"] == "0.00"
    assert body["shipping_method"] == "standard"


@pytest.mark.django_db
def test_add_update_and_delete_item_flow(client_user, product):
    client, _ = client_user

    r_add = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json")
    assert r_add.status_code == 201
    body = r_add.json()
    assert body["subtotal"] == "100.00"
    assert body["items"][0]["product_id"] == product.id
    item_id = body["items"][0]["id"]

    r_upd = client.patch(f"/api/v1/cart/items/{item_id}/", {"quantity": 3}, format="json")
    assert r_upd.status_code == 200
    assert r_upd.json()["items"][0]["quantity"] == 3

    r_del = client.delete(f"/api/v1/cart/items/{item_id}/delete/")
    assert r_del.status_code == 204
    assert client.get("/api/v1/cart/").json()["items"] == []


@pytest.mark.django_db
def test_add_with_variant_round_trips_canonical_options(client_user, product):
    client, _ = client_user
    variant = {"name": "Shirt", "options": [{"name": "size", "value": "M"}, {"name": "color", "value": "red"}]}

    resp = client.post(
        "/api/v1/cart/items/", {"product_id": product.id, "quantity": 1, "variant": variant}, format="json"
    )

    assert resp.status_code == 201
    options = resp.json()["items"][0]["variant"]["options"]
    assert [o["name"] for o in options] == ["color", "size"]


@pytest.mark.django_db
def test_add_out_of_stock_returns_error_shape(client_user):
    client, _ = client_user
    product = StockItemFactory(quantity=1).product

    resp = client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 5}, format="json")

    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "out_of_stock"
    assert body["product_id"] == product.id
    assert "detail" in body


@pytest.mark.django_db
def test_add_unknown_product_is_404(client_user):
    client, _ = client_user

    resp = client.post("/api/v1/cart/items/", {"product_id": 424242, "quantity": 1}, format="json")

    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


@pytest.mark.django_db
def test_negative_quantity_rejected_by_serializer(client_user, product):
    client, _ = client_user
    item_id = client.post("/api/v1/cart/items/", {"product_id": product.id}, format="json").json()["items"][0]["id"]

    resp = client.patch(f"/api/v1/cart/items/{item_id}/", {"quantity": -1}, format="json")

    assert resp.status_code == 400


@pytest.mark.django_db
def test_stale_if_match_is_rejected(client_user, product):
    client, _ = client_user
    client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 1}, format="json")

    resp = client.post(
        "/api/v1/cart/items/", {"product_id": product.id, "quantity": 1}, format="json", HTTP_IF_MATCH="0"
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "concurrency_conflict"

    current = client.get("/api/v1/cart/").json()["version"]
    ok = client.post(
        "/api/v1/cart/items/",
        {"product_id": product.id, "quantity": 1},
        format="json",
        HTTP_IF_MATCH=f'"{current}"',
    )
    assert ok.status_code == 201
    assert ok.json()["version"] == current + 1


@pytest.mark.django_db
def test_malformed_if_match_is_400(client_user):
    client, _ = client_user

    resp = client.post("/api/v1/cart/clear/", HTTP_IF_MATCH="abc")

    assert resp.status_code == 400
    assert resp.json()["code"] == "commerce_error"


@pytest.mark.django_db
def test_coupon_apply_and_remove(client_user, product):
    client, _ = client_user
    client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json")

    resp = client.post("/api/v1/cart/coupon/", {"code": "welcome10"}, format="json")
    assert resp.status_code == 200
    body = resp.json()
    assert body["coupon"]["code"] == "WELCOME10"
    assert body["discount_amount"] == "10.00"
    assert body["total"] == "90.00"

    bad = client.post("/api/v1/cart/coupon/", {"code": "NOPE"}, format="json")
    assert bad.status_code == 400
    assert bad.json()["code"] == "invalid_coupon"

    removed = client.delete("/api/v1/cart/coupon/")
    assert removed.status_code == 200
    assert removed.json()["coupon"] is None


@pytest.mark.django_db
def test_coupon_on_empty_cart(client_user):
    client, _ = client_user

    resp = client.post("/api/v1/cart/coupon/", {"code": "SAVE20"}, format="json")

    assert resp.status_code == 400
    assert resp.json()["code"] == "empty_cart"


@pytest.mark.django_db
def test_pricing_endpoint(client_user, product):
    client, _ = client_user
    client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json")

    resp = client.patch("/api/v1/cart/pricing/", {"shipping_method": "express", "tax_rate": "8.00"}, format="json")
    assert resp.status_code == 200
    body = resp.json()
    assert body["shipping_cost"] == "15.00"
    assert body["tax_amount"] == "8.00"
    assert body["total"] == "123.00"

    bad = client.patch("/api/v1/cart/pricing/", {"shipping_method": "teleport"}, format="json")
    assert bad.status_code == 400
    assert bad.json()["code"] == "invalid_shipping_method"

    empty = client.patch("/api/v1/cart/pricing/", {}, format="json")
    assert empty.status_code == 400


@pytest.mark.django_db
def test_clear_endpoint(client_user, product):
    client, user = client_user
    client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json")

    resp = client.post("/api/v1/cart/clear/")

    assert resp.status_code == 200
    assert resp.json()["items"] == []
    assert Cart.objects.filter(user=user).exists()


@pytest.mark.django_db
def test_storage_failure_maps_to_503(client_user, monkeypatch):
    client, _ = client_user

    def _boom(*, user):
        raise OperationalError("connection refused")

    monkeypatch.setattr("cart.views.get_cart_for_user", _boom)

    resp = client.get("/api/v1/cart/")

    assert resp.status_code == 503
    assert resp.json()["code"] == "storage_error"
