from decimal import Decimal

import pytest

from storefront.domain.errors import Conflict, InsufficientStock, InvalidRequest, NotFound
from storefront.domain.schemas import ProductCreate
from storefront.services.catalog_service import CatalogService


@pytest.fixture
def catalog(db):
    return CatalogService(db)


def test_conditional_decrement_succeeds_within_stock(db, catalog, make_product, stock_of):
    product = make_product(stock=5)

    catalog.decrement_stock(product.id, 5)
    db.commit()

    assert stock_of(product.id) == 0


def test_conditional_decrement_refuses_to_go_negative(db, catalog, make_product, stock_of):
    product = make_product(stock=2)

    with pytest.raises(InsufficientStock) as exc:
        catalog.decrement_stock(product.id, 3)
    db.rollback()

    assert exc.value.product_id == product.id
    assert stock_of(product.id) == 2


def test_decrement_of_inactive_product_fails(db, catalog, make_product):
    product = make_product(stock=5, active=False)

    with pytest.raises(InsufficientStock):
        catalog.decrement_stock(product.id, 1)


def test_increment_restocks(db, catalog, make_product, stock_of):
    product = make_product(stock=1)

    catalog.increment_stock(product.id, 4)
    db.commit()

    assert stock_of(product.id) == 5


def test_increment_of_missing_product(catalog):
    with pytest.raises(NotFound):
        catalog.increment_stock(999, 1)


def test_get_product_not_found(catalog):
    with pytest.raises(NotFound):
        catalog.get_product(42)


def test_create_product_rejects_duplicate_sku(catalog):
    payload = ProductCreate(sku="DUP-1", name="Lamp", price=Decimal("12.50"), stock=3)
    catalog.create_product(payload)

    with pytest.raises(Conflict):
        catalog.create_product(payload)


def test_adjust_stock_both_directions(catalog, make_product):
    product = make_product(stock=3)

    assert catalog.adjust_stock(product.id, 7).stock == 10
    assert catalog.adjust_stock(product.id, -4).stock == 6


def test_adjust_stock_cannot_go_negative(catalog, make_product, stock_of):
    product = make_product(stock=3)

    with pytest.raises(InsufficientStock):
        catalog.adjust_stock(product.id, -4)
    assert stock_of(product.id) == 3


def test_adjust_stock_applies_to_inactive_products(catalog, make_product):
    product = make_product(stock=3, active=False)

    assert catalog.adjust_stock(product.id, -3).stock == 0


def test_adjust_stock_zero_is_invalid(catalog, make_product):
    product = make_product()

    with pytest.raises(InvalidRequest):
        catalog.adjust_stock(product.id, 0)
