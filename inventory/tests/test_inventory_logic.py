from decimal import Decimal

import pytest
from catalog.tests.factories import ProductFactory
from common.exceptions import OutOfStock, ProductUnavailable
from inventory.models import StockItem, StockMovement
from inventory.selectors import availability, is_available, low_stock_items
from inventory.services import MovementError, apply_movement, release_stock, reserve_stock

from .factories import StockItemFactory


@pytest.mark.django_db
def test_signed_movement_inbound_and_outbound():
    item = StockItemFactory(quantity=10)

    apply_movement(product_id=item.product_id, movement_type=StockMovement.TYPE_INBOUND, quantity=5)
    item.refresh_from_db()
    assert item.quantity == 15

    apply_movement(product_id=item.product_id, movement_type=StockMovement.TYPE_OUTBOUND, quantity=-3)
    item.refresh_from_db()
    assert item.quantity == 12
    assert item.movements.count() == 2

    with pytest.raises(MovementError):
        apply_movement(product_id=item.product_id, movement_type=StockMovement.TYPE_OUTBOUND, quantity=-20)
    item.refresh_from_db()
    assert item.quantity == 12


@pytest.mark.django_db
def test_is_available_rules():
    tracked = StockItemFactory(quantity=2)
    assert is_available(tracked.product, 2) is True
    assert is_available(tracked.product, 3) is False

    backorder = StockItemFactory(quantity=0, allow_backorder=True)
    assert is_available(backorder.product, 50) is True

    untracked = StockItemFactory(quantity=0, track_inventory=False)
    assert is_available(untracked.product, 1000) is True

    # No stock row: tracked with nothing on hand
    assert is_available(ProductFactory(), 1) is False


@pytest.mark.django_db
def test_availability_labels():
    assert availability(StockItemFactory(quantity=3).product) == "in-stock"
    assert availability(StockItemFactory(quantity=0, track_inventory=False).product) == "in-stock"
    assert availability(StockItemFactory(quantity=0, allow_backorder=True).product) == "backorder"
    assert availability(StockItemFactory(quantity=0).product) == "out-of-stock"
    assert availability(ProductFactory()) == "out-of-stock"


@pytest.mark.django_db
def test_reserve_decrements_and_counts_revenue():
    item = StockItemFactory(quantity=3)

    taken = reserve_stock(product_id=item.product_id, quantity=3, unit_price=Decimal("10.00"), reference="ORD-1")

    item.refresh_from_db()
    assert taken == 3
    assert item.quantity == 0
    assert item.total_sold == 3
    assert item.total_revenue == Decimal("30.00")
    movement = item.movements.get()
    assert movement.movement_type == StockMovement.TYPE_OUTBOUND
    assert movement.quantity == -3
    assert movement.reference == "ORD-1"


@pytest.mark.django_db
def test_reserve_out_of_stock_leaves_row_untouched():
    item = StockItemFactory(quantity=1)

    with pytest.raises(OutOfStock) as exc:
        reserve_stock(product_id=item.product_id, quantity=2, unit_price=Decimal("10.00"))

    assert isinstance(exc.value, ProductUnavailable)
    assert exc.value.as_dict()["product_id"] == item.product_id
    item.refresh_from_db()
    assert item.quantity == 1
    assert item.total_sold == 0
    assert not item.movements.exists()


@pytest.mark.django_db
def test_reserve_backorder_clamps_at_zero():
    item = StockItemFactory(quantity=2, allow_backorder=True)

    taken = reserve_stock(product_id=item.product_id, quantity=5, unit_price=Decimal("4.00"))

    item.refresh_from_db()
    assert taken == 2
    assert item.quantity == 0
    assert item.total_sold == 5
    assert item.total_revenue == Decimal("20.00")


@pytest.mark.django_db
def test_reserve_untracked_only_counts():
    item = StockItemFactory(quantity=0, track_inventory=False)

    taken = reserve_stock(product_id=item.product_id, quantity=4, unit_price=Decimal("1.50"))

    item.refresh_from_db()
    assert taken == 0
    assert item.quantity == 0
    assert item.total_sold == 4
    assert not item.movements.exists()


@pytest.mark.django_db
def test_reserve_without_stock_row_is_out_of_stock():
    product = ProductFactory()

    with pytest.raises(OutOfStock):
        reserve_stock(product_id=product.id, quantity=1, unit_price=Decimal("1.00"))


@pytest.mark.django_db
def test_release_restores_exact_reserved_units():
    item = StockItemFactory(quantity=2, allow_backorder=True)
    taken = reserve_stock(product_id=item.product_id, quantity=5, unit_price=Decimal("4.00"))

    release_stock(
        product_id=item.product_id, quantity=5, reserved_quantity=taken, unit_price=Decimal("4.00"), reference="x"
    )

    item.refresh_from_db()
    assert item.quantity == 2
    assert item.total_sold == 0
    assert item.total_revenue == Decimal("0.00")
    assert item.movements.filter(movement_type=StockMovement.TYPE_INBOUND, quantity=2).exists()


@pytest.mark.django_db
def test_low_stock_warning_logged(caplog):
    item = StockItemFactory(quantity=6, low_stock_threshold=5)

    with caplog.at_level("WARNING", logger="shopcore.inventory"):
        reserve_stock(product_id=item.product_id, quantity=1, unit_price=Decimal("1.00"))

    assert any(getattr(r, "event", None) == "inventory.low_stock" for r in caplog.records)
    assert list(low_stock_items()) == [StockItem.objects.get(pk=item.pk)]
