import math
import random

from storefront.client.cart_store import CartStore

REACT = {"id": "10001", "name": "React", "price": 29, "stock": 2, "in_stock": True}
DJANGO = {"id": "10002", "name": "Django", "price": 19.5, "stock": None, "in_stock": True}


def assert_consistent(cart: CartStore):
    expected = sum(i.quantity * i.price for i in cart.items)
    assert cart.total >= 0
    assert math.isclose(cart.total, expected, rel_tol=1e-6, abs_tol=1e-9)
    ids = [i.id for i in cart.items]
    assert len(ids) == len(set(ids))
    for item in cart.items:
        assert item.quantity >= 1
        if item.stock is not None:
            assert item.quantity <= item.stock


def test_add_increments_existing_item():
    cart = CartStore()
    assert cart.add_to_cart(DJANGO)
    assert cart.add_to_cart(DJANGO)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2
    assert cart.total == 39.0
    assert_consistent(cart)


def test_add_stops_at_stock():
    cart = CartStore()
    assert cart.add_to_cart(REACT)
    assert cart.add_to_cart(REACT)
    assert not cart.add_to_cart(REACT)

    assert cart.items[0].quantity == 2
    assert cart.total == 58
    assert_consistent(cart)


def test_out_of_stock_products_are_rejected():
    cart = CartStore()
    assert not cart.add_to_cart({**REACT, "stock": 0})
    assert not cart.add_to_cart({"id": "x", "price": 5, "in_stock": False})
    assert not cart.add_to_cart({"name": "no id", "price": 5})
    assert not cart.add_to_cart(None)
    assert cart.items == []
    assert cart.total == 0


def test_missing_price_counts_as_zero():
    cart = CartStore()
    assert cart.add_to_cart({"id": "free"})
    assert cart.total == 0
    assert_consistent(cart)


def test_remove_from_cart():
    cart = CartStore()
    cart.add_to_cart(REACT)
    cart.add_to_cart(DJANGO)

    assert cart.remove_from_cart(REACT)
    assert not cart.remove_from_cart(REACT)
    assert [i.id for i in cart.items] == ["10002"]
    assert cart.total == 19.5


def test_update_quantity_clamps_and_respects_stock():
    cart = CartStore()
    cart.add_to_cart(REACT)
    cart.add_to_cart(DJANGO)

    assert cart.update_quantity(DJANGO, 0)
    assert cart.items[1].quantity == 1
    assert cart.update_quantity(DJANGO, "nonsense")
    assert cart.items[1].quantity == 1
    assert cart.update_quantity(DJANGO, 7)
    assert not cart.update_quantity(REACT, 3)
    assert cart.items[0].quantity == 1
    assert not cart.update_quantity({"id": "absent"}, 2)
    assert cart.total == 29 + 7 * 19.5
    assert_consistent(cart)


def test_listeners_see_every_change():
    cart = CartStore()
    seen = []
    unsubscribe = cart.subscribe(seen.append)

    cart.add_to_cart(DJANGO)
    cart.add_to_cart({**REACT, "stock": 0})
    cart.clear_cart()
    unsubscribe()
    cart.add_to_cart(DJANGO)

    assert [s["total"] for s in seen] == [19.5, 0]
    assert seen[0]["items"][0]["quantity"] == 1


def test_identity_change_clears_cart():
    cart = CartStore()
    cart.add_to_cart(DJANGO)

    cart.handle_identity_change(None, "u1")
    assert cart.count == 1

    cart.handle_identity_change("u1", "u2")
    assert cart.items == []
    assert cart.total == 0

    cart.add_to_cart(DJANGO)
    cart.handle_identity_change("u2", None)
    assert cart.count == 0


def test_random_mutation_sequences_keep_total_consistent():
    rng = random.Random(20261019)
    catalog = [
        {"id": str(10000 + n), "name": f"Book {n}", "price": round(rng.uniform(0.01, 99.99), 2),
         "stock": rng.choice([None, 1, 2, 3, 5, 0])}
        for n in range(8)
    ] + [{"id": "cheap", "price": 0.1, "stock": None}, {"id": "odd", "price": 1 / 3, "stock": 4}]

    for _ in range(20):
        cart = CartStore()
        for _ in range(200):
            product = rng.choice(catalog)
            op = rng.random()
            if op < 0.5:
                cart.add_to_cart(product)
            elif op < 0.7:
                cart.remove_from_cart(product)
            elif op < 0.95:
                cart.update_quantity(product, rng.choice([-1, 0, 1, 2, 3, 7, "4", "x", None]))
            else:
                cart.clear_cart()
            assert_consistent(cart)
            expected = sum(i.quantity * i.price for i in cart.items)
            assert abs(cart.total - expected) <= 1e-6
            assert cart.snapshot()["total"] == cart.total
