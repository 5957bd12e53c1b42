"""Tests for order creation, lookup and status updates."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

import database
import orders
from errors import NotFound, ValidationError
from schemas import CreateOrderPayload


def _payload(**overrides):
    data = {
        "email": "buyer@example.com",
        "first_name": "Rahim",
        "last_name": "Uddin",
        "address": "1 Rd",
        "city": "Dhaka",
        "zip_code": "1000",
        "phone": "01700000000",
        "shipping_method": "standard",
        "shipping_cost": 5.0,
        "payment_method": "cod",
        "items": [{"product_id": "SKU-1", "name": "Earbuds", "price": 50.0, "quantity": 2, "images": []}],
        "subtotal": 100.0,
        "tax": 8.0,
        "total": 113.0,
    }
    data.update(overrides)
    return CreateOrderPayload(**data)


class TestCreateOrder:
    def test_new_order_is_pending(self, store):
        order_id = orders.create_order(_payload())

        stored = store.order.find_one({"_id": ObjectId(order_id)})
        assert stored["status"] == "pending"
        assert stored["status_updated_at"] is None
        assert stored["total"] == 113.0

    def test_costs_are_stored_as_given(self, store):
        order_id = orders.create_order(_payload(subtotal=1.0, tax=0.0, total=999.0))

        stored = store.order.find_one({"_id": ObjectId(order_id)})
        assert stored["subtotal"] == 1.0
        assert stored["total"] == 999.0

    def test_requires_email(self):
        with pytest.raises(ValidationError):
            orders.create_order(_payload(email=""))

    def test_requires_items(self, store):
        with pytest.raises(ValidationError):
            orders.create_order(_payload(items=[]))
        assert store.order.count_documents({}) == 0


class TestGetOrder:
    def test_timestamps_are_iso_strings(self):
        order_id = orders.create_order(_payload())

        order = orders.get_order(order_id)
        assert order["_id"] == order_id
        datetime.fromisoformat(order["created_at"])

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            orders.get_order(str(ObjectId()))

    def test_malformed_id(self):
        with pytest.raises(ValidationError):
            orders.get_order("not-an-id")


def test_list_orders_newest_first(store):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for days, email in [(1, "middle@example.com"), (0, "oldest@example.com"), (2, "newest@example.com")]:
        store.order.insert_one({"email": email, "items": [], "status": "pending", "created_at": base + timedelta(days=days)})

    assert [o["email"] for o in orders.list_orders()] == [
        "newest@example.com",
        "middle@example.com",
        "oldest@example.com",
    ]


class TestUpdateStatus:
    def test_shipped(self, store):
        order_id = orders.create_order(_payload())

        order = orders.update_status(order_id, "shipped")
        assert order["status"] == "shipped"
        assert order["status_updated_at"] is not None
        assert store.order.find_one({"_id": ObjectId(order_id)})["status"] == "shipped"

    def test_bogus_status_leaves_order_unchanged(self, store):
        order_id = orders.create_order(_payload())
        before = store.order.find_one({"_id": ObjectId(order_id)})

        with pytest.raises(ValidationError):
            orders.update_status(order_id, "bogus")

        after = store.order.find_one({"_id": ObjectId(order_id)})
        assert after == before

    def test_missing_status(self):
        order_id = orders.create_order(_payload())
        with pytest.raises(ValidationError):
            orders.update_status(order_id, None)

    def test_any_transition_is_allowed(self):
        order_id = orders.create_order(_payload())
        orders.update_status(order_id, "delivered")

        assert orders.update_status(order_id, "pending")["status"] == "pending"

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            orders.update_status(str(ObjectId()), "confirmed")


class TestOrderEndpoints:
    def _create(self, client):
        return client.post("/orders", json=_payload().model_dump(by_alias=True)).json()["orderId"]

    def test_create(self, client):
        response = client.post("/orders", json=_payload().model_dump(by_alias=True))
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Order created successfully"
        assert ObjectId.is_valid(data["orderId"])

    def test_create_from_camel_case_body(self, client, store):
        response = client.post(
            "/orders",
            json={
                "email": "buyer@example.com",
                "firstName": "Rahim",
                "zipCode": "1000",
                "shippingMethod": "express",
                "items": [{"productId": "SKU-1", "name": "Earbuds", "price": 50.0, "quantity": 1}],
                "total": 50.0,
            },
        )
        assert response.status_code == 201

        stored = store.order.find_one({"_id": ObjectId(response.json()["orderId"])})
        assert stored["first_name"] == "Rahim"
        assert stored["zip_code"] == "1000"
        assert stored["items"][0]["product_id"] == "SKU-1"

    def test_create_missing_fields(self, client):
        response = client.post("/orders", json={"email": "x@example.com", "items": []})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_list_and_fetch(self, client):
        order_id = self._create(client)

        listing = client.get("/orders").json()
        assert [o["_id"] for o in listing] == [order_id]
        assert listing[0]["firstName"] == "Rahim"
        assert "first_name" not in listing[0]

        response = client.get("/orders", params={"orderId": order_id})
        assert response.status_code == 200
        assert response.json()["order"]["email"] == "buyer@example.com"
        assert response.json()["order"]["zipCode"] == "1000"

        assert client.get(f"/orders/{order_id}").json()["_id"] == order_id

    def test_fetch_missing(self, client):
        response = client.get("/orders", params={"orderId": str(ObjectId())})
        assert response.status_code == 404
        assert response.json() == {"error": "Order not found"}

    def test_fetch_malformed_id(self, client):
        response = client.get("/orders", params={"orderId": "not-an-id"})
        assert response.status_code == 400

    def test_put_status(self, client):
        order_id = self._create(client)

        response = client.put(f"/orders/{order_id}", json={"status": "confirmed"})
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        assert response.json()["statusUpdatedAt"] is not None

    def test_put_invalid_status(self, client):
        order_id = self._create(client)

        response = client.put(f"/orders/{order_id}", json={"status": "lost"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid status"}

    def test_update_status_route(self, client):
        order_id = self._create(client)

        response = client.post("/orders/update-status", json={"orderId": order_id, "status": "processing"})
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["order"]["status"] == "processing"

    def test_update_status_route_requires_fields(self, client):
        response = client.post("/orders/update-status", json={"status": "processing"})
        assert response.status_code == 400
        assert response.json() == {"error": "Order ID and status are required"}

    def test_update_status_route_missing_order(self, client):
        response = client.post("/orders/update-status", json={"orderId": str(ObjectId()), "status": "shipped"})
        assert response.status_code == 404

    def test_database_not_configured(self, client, monkeypatch):
        monkeypatch.setattr(database, "db", None)

        response = client.get("/orders")
        assert response.status_code == 500
        assert response.json() == {"error": "Database not configured"}
