from types import SimpleNamespace

import pytest
from catalog.tests.factories import ProductFactory
from django.contrib import admin
from django.test import RequestFactory
from inventory.models import StockItem, StockMovement

from .factories import StockItemFactory


def _request(user):
    request = RequestFactory().post("/admin/inventory/stockitem/")
    request.user = user
    return request


@pytest.mark.django_db
def test_admin_quantity_edit_is_recorded_as_adjustment(admin_user):
    item = StockItemFactory(quantity=10)
    model_admin = admin.site._registry[StockItem]
    item.quantity = 15
    item.low_stock_threshold = 2

    model_admin.save_model(_request(admin_user), item, SimpleNamespace(initial={"quantity": 10}), True)

    item.refresh_from_db()
    assert item.quantity == 15
    assert item.low_stock_threshold == 2
    movement = StockMovement.objects.get(stock_item=item)
    assert movement.movement_type == StockMovement.TYPE_ADJUST
    assert movement.quantity == 5
    assert "admin" in movement.reason


@pytest.mark.django_db
def test_admin_edit_keeps_sales_made_while_form_was_open(admin_user):
    item = StockItemFactory(quantity=10)
    model_admin = admin.site._registry[StockItem]
    StockItem.objects.filter(pk=item.pk).update(quantity=7)
    item.quantity = 8

    model_admin.save_model(_request(admin_user), item, SimpleNamespace(initial={"quantity": 10}), True)

    item.refresh_from_db()
    assert item.quantity == 5
    assert StockMovement.objects.get(stock_item=item).quantity == -2


@pytest.mark.django_db
def test_admin_create_and_settings_only_edit(admin_user):
    model_admin = admin.site._registry[StockItem]
    item = StockItem(product=ProductFactory(), quantity=4)

    model_admin.save_model(_request(admin_user), item, SimpleNamespace(initial={}), False)
    item.allow_backorder = True
    model_admin.save_model(_request(admin_user), item, SimpleNamespace(initial={"quantity": 4}), True)

    item.refresh_from_db()
    assert item.quantity == 4
    assert item.allow_backorder is True
    assert list(StockMovement.objects.filter(stock_item=item).values_list("quantity", flat=True)) == [4]


@pytest.mark.django_db
def test_movement_ledger_is_read_only_in_admin(admin_client):
    item = StockItemFactory()
    movement = StockMovement.objects.create(stock_item=item, movement_type=StockMovement.TYPE_INBOUND, quantity=3)

    assert admin_client.get("/admin/inventory/stockmovement/add/").status_code == 403
    assert admin_client.post(f"/admin/inventory/stockmovement/{movement.id}/delete/", {"post": "yes"}).status_code == 403
    assert StockMovement.objects.filter(id=movement.id).exists()


# EOF
