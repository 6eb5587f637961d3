"""Shared fixtures: a throwaway SQLite store, the ASGI app and seeded users.

Environment must be set before ``storefront`` is imported, since the engine and
the JWT secret are read at import time.
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx  # noqa: E402
import pytest  # noqa: E402

from storefront import crud  # noqa: E402
from storefront.app import app  # noqa: E402
from storefront.client import Storefront  # noqa: E402
from storefront.db import AsyncSessionLocal, Base, engine  # noqa: E402

BASE_URL = "http://test"
PASSWORD = "secret-pass-1"

ADMIN_EMAIL = "admin@codebook.com"
ALICE_EMAIL = "alice@example.com"
BOB_EMAIL = "bob@example.com"

BOOK = {
    "id": "10001",
    "name": "Basics To Advanced In React",
    "overview": "Components, hooks and state.",
    "price": 29,
    "in_stock": True,
    "stock": 2,
}


def make_transport() -> httpx.ASGITransport:
    return httpx.ASGITransport(app=app, raise_app_exceptions=False)


@pytest.fixture
async def store():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # connections are bound to this test's event loop
    await engine.dispose()


@pytest.fixture
async def users(store):
    async with AsyncSessionLocal() as db:
        admin = await crud.create_user(db, "Admin User", ADMIN_EMAIL, PASSWORD, role="admin")
        alice = await crud.create_user(db, "Alice", ALICE_EMAIL, PASSWORD)
        bob = await crud.create_user(db, "Bob", BOB_EMAIL, PASSWORD)
    return {"admin": admin, "alice": alice, "bob": bob}


@pytest.fixture
async def products(store):
    async with AsyncSessionLocal() as db:
        await crud.upsert_product(db, BOOK)
        await crud.upsert_product(db, {**BOOK, "id": "10002", "name": "Django for Beginners",
                                       "overview": "Web apps with Python.", "price": 19, "stock": None})
        await crud.upsert_product(db, BOOK, featured=True)


@pytest.fixture
async def client(store):
    async with httpx.AsyncClient(transport=make_transport(), base_url=BASE_URL) as c:
        yield c


@pytest.fixture
def login(client):
    async def _login(email: str, password: str = PASSWORD) -> dict:
        r = await client.post("/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        body = r.json()
        return {"Authorization": f"Bearer {body['accessToken']}", "user": body["user"]}
    return _login


def bearer(session: dict) -> dict:
    return {"Authorization": session["Authorization"]}


@pytest.fixture
async def shop(store):
    async with Storefront(base_url=BASE_URL, transport=make_transport(), poll_interval=0.05) as s:
        yield s


@pytest.fixture
async def second_shop(store):
    async with Storefront(base_url=BASE_URL, transport=make_transport(), poll_interval=0.05) as s:
        yield s
