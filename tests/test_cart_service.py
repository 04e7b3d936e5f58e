"""Cart aggregate: lazy creation, additive lines, stock validation, all-or-nothing merge."""

import threading
from decimal import Decimal

import pytest

from storefront.domain.errors import Conflict, InsufficientStock, InvalidRequest, NotFound
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_service import CartService


@pytest.fixture
def carts(db):
    return CartService(db)


def test_get_or_create_is_idempotent(carts, customer):
    first = carts.get_or_create(customer.id)
    second = carts.get_or_create(customer.id)

    assert first["cart_id"] == second["cart_id"]
    assert second["items"] == []
    assert second["total"] == Decimal("0.00")


def test_each_user_gets_own_cart(carts, customer, other_customer):
    assert carts.get_or_create(customer.id)["cart_id"] != carts.get_or_create(other_customer.id)["cart_id"]


def test_add_item_creates_cart_lazily(carts, customer, make_product):
    product = make_product(stock=5, price="19.99")

    cart = carts.add_item(customer.id, product.id, 2)

    assert len(cart["items"]) == 1
    line = cart["items"][0]
    assert line["product_id"] == product.id
    assert line["quantity"] == 2
    assert line["unit_price"] == Decimal("19.99")
    assert cart["total"] == Decimal("39.98")


def test_adding_same_product_sums_quantities(carts, customer, make_product):
    product = make_product(stock=5)

    carts.add_item(customer.id, product.id, 2)
    cart = carts.add_item(customer.id, product.id, 3)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5


def test_summed_quantity_is_checked_against_stock(carts, customer, make_product):
    product = make_product(stock=5)
    carts.add_item(customer.id, product.id, 3)

    with pytest.raises(InsufficientStock):
        carts.add_item(customer.id, product.id, 3)

    assert carts.get_or_create(customer.id)["items"][0]["quantity"] == 3


@pytest.mark.parametrize("quantity", [0, -1])
def test_add_item_rejects_non_positive_quantity(carts, customer, make_product, stock_of, quantity):
    product = make_product(stock=5)

    with pytest.raises(InvalidRequest):
        carts.add_item(customer.id, product.id, quantity)
    assert stock_of(product.id) == 5


def test_add_missing_product(carts, customer):
    with pytest.raises(NotFound):
        carts.add_item(customer.id, 999, 1)


def test_add_inactive_product(carts, customer, make_product):
    product = make_product(active=False)

    with pytest.raises(NotFound):
        carts.add_item(customer.id, product.id, 1)


def test_adding_to_cart_does_not_touch_stock(carts, customer, make_product, stock_of):
    product = make_product(stock=5)

    carts.add_item(customer.id, product.id, 4)

    assert stock_of(product.id) == 5


def test_update_item_replaces_quantity(carts, customer, make_product):
    product = make_product(stock=5)
    item_id = carts.add_item(customer.id, product.id, 1)["items"][0]["id"]

    cart = carts.update_item(customer.id, item_id, 4)

    assert cart["items"][0]["quantity"] == 4


def test_update_item_checks_stock(carts, customer, make_product):
    product = make_product(stock=5)
    item_id = carts.add_item(customer.id, product.id, 1)["items"][0]["id"]

    with pytest.raises(InsufficientStock):
        carts.update_item(customer.id, item_id, 6)


def test_update_item_rejects_zero(carts, customer, make_product):
    product = make_product(stock=5)
    item_id = carts.add_item(customer.id, product.id, 1)["items"][0]["id"]

    with pytest.raises(InvalidRequest):
        carts.update_item(customer.id, item_id, 0)


def test_cannot_touch_another_users_item(carts, customer, other_customer, make_product):
    product = make_product(stock=5)
    item_id = carts.add_item(customer.id, product.id, 1)["items"][0]["id"]

    with pytest.raises(NotFound):
        carts.update_item(other_customer.id, item_id, 2)
    with pytest.raises(NotFound):
        carts.remove_item(other_customer.id, item_id)

    assert carts.get_or_create(customer.id)["items"][0]["quantity"] == 1


def test_add_then_remove_restores_item_count(carts, customer, make_product):
    kept = make_product(stock=5)
    added = make_product(stock=5)
    carts.add_item(customer.id, kept.id, 1)
    before = len(carts.get_or_create(customer.id)["items"])

    cart = carts.add_item(customer.id, added.id, 2)
    item_id = next(i["id"] for i in cart["items"] if i["product_id"] == added.id)
    cart = carts.remove_item(customer.id, item_id)

    assert len(cart["items"]) == before


def test_remove_missing_item(carts, customer):
    with pytest.raises(NotFound):
        carts.remove_item(customer.id, 12345)


def test_clear_twice_is_idempotent(carts, customer, make_product):
    carts.add_item(customer.id, make_product().id, 1)
    carts.add_item(customer.id, make_product().id, 2)

    assert carts.clear(customer.id)["items"] == []
    assert carts.clear(customer.id)["items"] == []


def test_clear_keeps_the_cart_record(carts, customer, make_product):
    cart_id = carts.add_item(customer.id, make_product().id, 1)["cart_id"]

    assert carts.clear(customer.id)["cart_id"] == cart_id


def test_merge_adds_to_existing_lines(carts, customer, make_product):
    a = make_product(stock=10)
    b = make_product(stock=10)
    carts.add_item(customer.id, a.id, 2)

    cart = carts.merge(customer.id, [(a.id, 3), (b.id, 1), (b.id, 1)])

    quantities = {i["product_id"]: i["quantity"] for i in cart["items"]}
    assert quantities == {a.id: 5, b.id: 2}


def test_merge_is_all_or_nothing_on_missing_product(carts, customer, make_product):
    a = make_product(stock=10)
    carts.add_item(customer.id, a.id, 1)

    with pytest.raises(NotFound):
        carts.merge(customer.id, [(a.id, 2), (999, 1)])

    cart = carts.get_or_create(customer.id)
    assert [(i["product_id"], i["quantity"]) for i in cart["items"]] == [(a.id, 1)]


def test_merge_is_all_or_nothing_on_stock(carts, customer, make_product):
    a = make_product(stock=10)
    b = make_product(stock=2)

    with pytest.raises(InsufficientStock):
        carts.merge(customer.id, [(a.id, 2), (b.id, 3)])

    assert carts.get_or_create(customer.id)["items"] == []


def test_merge_rejects_bad_quantity(carts, customer, make_product):
    with pytest.raises(InvalidRequest):
        carts.merge(customer.id, [(make_product().id, 0)])


def test_every_mutation_bumps_version(db, carts, customer, make_product):
    product = make_product(stock=5)
    carts.get_or_create(customer.id)
    repo = CartRepo(db)
    v0 = repo.get_cart_by_user(customer.id).version

    item_id = carts.add_item(customer.id, product.id, 1)["items"][0]["id"]
    carts.update_item(customer.id, item_id, 2)
    carts.remove_item(customer.id, item_id)
    carts.clear(customer.id)

    assert repo.get_cart_by_user(customer.id).version == v0 + 4


def _race(session_factory, jobs):
    """Each job gets its own thread and session; a barrier releases them together."""
    barrier = threading.Barrier(len(jobs))
    results = [None] * len(jobs)

    def worker(n, job):
        session = session_factory()
        try:
            service = CartService(session)
            barrier.wait()
            results[n] = ("ok", job(service))
        except Conflict as e:
            results[n] = ("conflict", e)
        except Exception as e:  # surfaced by the assertions below
            results[n] = ("error", e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(n, job)) for n, job in enumerate(jobs)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


@pytest.mark.parametrize("already_in_cart", [0, 2])
def test_concurrent_adds_never_lose_an_update(session_factory, carts, customer, make_product, already_in_cart):
    product = make_product(stock=100)
    carts.get_or_create(customer.id)
    if already_in_cart:
        carts.add_item(customer.id, product.id, already_in_cart)
    user_id, product_id = customer.id, product.id
    amounts = [1, 2, 3, 4, 5, 6]

    results = _race(
        session_factory,
        [lambda service, q=q: service.add_item(user_id, product_id, q) for q in amounts],
    )

    assert not [r for r in results if r[0] == "error"], results
    added = sum(q for q, r in zip(amounts, results) if r[0] == "ok")
    assert added > 0

    with session_factory() as s:
        lines = CartService(s).get_or_create(user_id)["items"]
    assert len(lines) == 1
    assert lines[0]["quantity"] == already_in_cart + added
