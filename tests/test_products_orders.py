import pytest

from storefront.db import engine
from storefront.models import Product
from tests.conftest import ALICE_EMAIL, bearer


@pytest.mark.asyncio
async def test_list_and_search_products(client, products):
    everything = (await client.get("/products")).json()
    assert {p["id"] for p in everything} == {"10001", "10002"}

    hits = (await client.get("/products", params={"name_like": "PYTHON"})).json()
    assert [p["id"] for p in hits] == ["10002"]
    assert hits[0]["stock"] is None


@pytest.mark.asyncio
async def test_product_detail_and_featured(client, products):
    r = await client.get("/products/10001")
    assert r.status_code == 200
    assert r.json()["price"] == 29.0

    assert (await client.get("/products/nope")).status_code == 404
    featured = (await client.get("/featured-products")).json()
    assert [p["id"] for p in featured] == ["10001"]


@pytest.mark.asyncio
async def test_place_and_list_orders(client, users, login):
    alice = await login(ALICE_EMAIL)
    cart = [{"id": "10001", "name": "React", "price": 29, "quantity": 2}]

    r = await client.post("/orders", json={"cartList": cart, "amount_paid": 58, "quantity": 2},
                          headers=bearer(alice))

    assert r.status_code == 201
    order = r.json()
    assert order["userId"] == users["alice"].id
    assert order["cartList"] == cart
    assert order["status"] == "pending"
    mine = (await client.get("/orders", headers=bearer(alice))).json()
    assert [o["id"] for o in mine] == [order["id"]]


@pytest.mark.asyncio
async def test_order_validation_and_auth(client, users, login):
    alice = await login(ALICE_EMAIL)

    empty = await client.post("/orders", json={"cartList": [], "amount_paid": 0, "quantity": 1},
                              headers=bearer(alice))
    assert empty.status_code == 400
    assert (await client.get("/orders")).status_code == 401


@pytest.mark.asyncio
async def test_missing_table_reports_unprovisioned_store(client, store):
    async with engine.begin() as conn:
        await conn.run_sync(Product.__table__.drop)

    r = await client.get("/products")

    assert r.status_code == 500
    assert "products" in r.json()["error"]
    assert "not provisioned" in r.json()["error"]
