"""Tests for application startup and the JSON wire format."""

import mongomock
from fastapi.testclient import TestClient

import database
from main import app, camelize


def test_startup_creates_unique_indexes(monkeypatch):
    db = mongomock.MongoClient().startup_test
    monkeypatch.setattr(database, "db", db)

    with TestClient(app) as client:
        assert client.get("/").status_code == 200

    assert db.user.index_information()["email_1"]["unique"] is True
    assert db.product.index_information()["product_id_1"]["unique"] is True
    assert db.wishlist.index_information()["user_id_1"]["unique"] is True


def test_camelize_keeps_underscored_keys():
    document = {
        "_id": "1",
        "zip_code": "1000",
        "addresses": [{"is_default": True, "created_at": "2024-01-01T00:00:00+00:00"}],
        "status": "pending",
    }

    assert camelize(document) == {
        "_id": "1",
        "zipCode": "1000",
        "addresses": [{"isDefault": True, "createdAt": "2024-01-01T00:00:00+00:00"}],
        "status": "pending",
    }
