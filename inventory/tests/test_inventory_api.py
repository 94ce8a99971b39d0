import pytest
from django.contrib.auth import get_user_model
from inventory.models import StockMovement
from rest_framework.test import APIClient

from .factories import StockItemFactory


@pytest.fixture
def staff_client():
    user = get_user_model().objects.create_user(username="stock-staff", password="x", is_staff=True)
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.mark.django_db
def test_stock_items_require_staff():
    user = get_user_model().objects.create_user(username="shopper", password="x")
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.get("/api/v1/inventory/stock-items/")
    assert resp.status_code == 403


@pytest.mark.django_db
def test_stock_items_list_basic(staff_client):
    s1 = StockItemFactory(product__sku="SKU-TEST-001", quantity=10)
    StockItemFactory(product__sku="SKU-TEST-002", quantity=0, allow_backorder=True)

    resp = staff_client.get("/api/v1/inventory/stock-items/")
    assert resp.status_code == 200
    data = resp.json()
    assert isinstance(data, dict) and "results" in data
    by_sku = {row["sku"]: row for row in data["results"]}
    assert by_sku["SKU-TEST-001"]["availability"] == "in-stock"
    assert by_sku["SKU-TEST-001"]["product"] == s1.product_id
    assert by_sku["SKU-TEST-002"]["availability"] == "backorder"


@pytest.mark.django_db
def test_stock_items_low_stock_filter(staff_client):
    low = StockItemFactory(quantity=2, low_stock_threshold=5)
    StockItemFactory(quantity=50, low_stock_threshold=5)

    resp = staff_client.get("/api/v1/inventory/stock-items/?low_stock=true")
    assert resp.status_code == 200
    ids = [row["id"] for row in resp.json()["results"]]
    assert ids == [low.id]


@pytest.mark.django_db
def test_movements_list_filters(staff_client):
    si = StockItemFactory()
    m_in = StockMovement.objects.create(stock_item=si, movement_type=StockMovement.TYPE_INBOUND, quantity=5)
    m_out = StockMovement.objects.create(stock_item=si, movement_type=StockMovement.TYPE_OUTBOUND, quantity=-2)

    resp_all = staff_client.get("/api/v1/inventory/movements/")
    assert resp_all.status_code == 200
    all_ids = {row["id"] for row in resp_all.json()["results"]}
    assert m_in.id in all_ids and m_out.id in all_ids

    resp_in = staff_client.get(f"/api/v1/inventory/movements/?movement_type={StockMovement.TYPE_INBOUND}")
    assert resp_in.status_code == 200
    in_ids = {row["id"] for row in resp_in.json()["results"]}
    assert m_in.id in in_ids and m_out.id not in in_ids


@pytest.mark.django_db
def test_impossible_date_filters_are_ignored(staff_client):
    item = StockItemFactory()
    StockMovement.objects.create(stock_item=item, movement_type=StockMovement.TYPE_INBOUND, quantity=1)

    items = staff_client.get("/api/v1/inventory/stock-items/", {"updated_after": "2024-13-01T00:00:00"})
    assert items.status_code == 200
    assert [row["id"] for row in items.json()["results"]] == [item.id]

    movements = staff_client.get("/api/v1/inventory/movements/", {"created_after": "2024-02-30T00:00:00"})
    assert movements.status_code == 200
    assert len(movements.json()["results"]) == 1


# EOF
