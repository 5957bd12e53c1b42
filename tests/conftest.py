import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from auth import Identity, hash_password, issue_token


@pytest.fixture(autouse=True)
def store(monkeypatch):
    """Fresh in-memory database per test, with the unique indexes in place."""
    db = mongomock.MongoClient().store_test
    monkeypatch.setattr(database, "db", db)
    database.ensure_indexes()
    return db


@pytest.fixture()
def client():
    from main import app

    return TestClient(app)


def make_user(email="jane@example.com", name="Jane Doe", password="secret123", **extra):
    user = {
        "name": name,
        "email": email,
        "password": hash_password(password),
        "role": "customer",
        "phone": "",
        "addresses": [],
        "wishlist": [],
    }
    user.update(extra)
    user_id = database.create_document("user", user)
    return Identity(id=user_id, email=email, role=user["role"])


def make_product(product_id="SKU-1", name="Wireless Earbuds", **extra):
    product = {
        "product_id": product_id,
        "name": name,
        "description": "In-ear, noise cancelling",
        "price": 59.99,
        "category": "",
        "images": [f"/img/{product_id}.jpg"],
        "slug": name.lower().replace(" ", "-"),
    }
    product.update(extra)
    return database.create_document("product", product)


@pytest.fixture()
def new_user():
    return make_user


@pytest.fixture()
def new_product():
    return make_product


@pytest.fixture()
def identity():
    return make_user()


@pytest.fixture()
def auth_headers(identity):
    return {"Authorization": f"Bearer {issue_token(identity)}"}
