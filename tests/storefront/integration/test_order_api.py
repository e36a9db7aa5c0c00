"""Integration tests for the order endpoints via TestClient."""

import pytest
from protean import current_domain

from storefront.catalogue.product import Product
from storefront.config import override_settings


@pytest.fixture()
def lamp(create_product):
    return create_product(name="Lamp", price=20.0, stock=10)


@pytest.fixture()
def place(client, lamp, api_address):
    def _place(headers, quantity=1, **extra):
        payload = {
            "items": [{"productId": lamp, "quantity": quantity}],
            "shippingAddress": api_address,
            "paymentMethod": "cod",
        }
        payload.update(extra)
        response = client.post("/api/orders", json=payload, headers=headers)
        assert response.status_code == 201
        return response.json()["order"]

    return _place


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


class TestCreateOrder:
    def test_create(self, client, customer, lamp, place):
        order = place(customer, quantity=2, notes="Leave at the door")

        assert order["totalItems"] == 2
        assert order["notes"] == "Leave at the door"
        assert order["items"][0]["product"]["name"] == "Lamp"
        assert order["statusHistory"] == []
        assert _stock(lamp) == 8

    def test_does_not_touch_cart(self, client, customer, lamp, place):
        client.post("/api/cart/add", json={"productId": lamp, "quantity": 1}, headers=customer)
        place(customer)

        assert len(client.get("/api/cart", headers=customer).json()["data"]["items"]) == 1

    def test_unlisted_items_are_rejected(self, client, customer, api_address):
        override_settings(allow_unlisted_items=True)

        response = client.post(
            "/api/orders",
            json={
                "items": [{"productId": "ext-1", "name": "Gift Card", "price": 25.0, "quantity": 1}],
                "shippingAddress": api_address,
                "paymentMethod": "cod",
            },
            headers=customer,
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Product not found: ext-1"

    def test_no_items(self, client, customer, api_address):
        response = client.post(
            "/api/orders",
            json={"items": [], "shippingAddress": api_address, "paymentMethod": "cod"},
            headers=customer,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No order items"


class TestMyOrders:
    def test_lists_own_orders_newest_first(self, client, customer, other_customer, place):
        first = place(customer)
        second = place(customer)
        place(other_customer)

        response = client.get("/api/orders/myorders", headers=customer)

        body = response.json()
        assert [order["id"] for order in body["orders"]] == [second["id"], first["id"]]
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 2, "pages": 1}

    def test_pagination(self, client, customer, place):
        for _ in range(3):
            place(customer)

        response = client.get("/api/orders/myorders", params={"page": 2, "limit": 2}, headers=customer)

        body = response.json()
        assert len(body["orders"]) == 1
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}


class TestGetOrder:
    def test_owner_can_read(self, client, customer, place):
        order = place(customer)

        response = client.get(f"/api/orders/{order['id']}", headers=customer)

        assert response.status_code == 200
        assert response.json()["order"]["orderNumber"] == order["orderNumber"]

    def test_other_user_is_forbidden(self, client, customer, other_customer, place):
        order = place(customer)

        response = client.get(f"/api/orders/{order['id']}", headers=other_customer)

        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_admin_can_read(self, client, customer, admin, place):
        order = place(customer)

        response = client.get(f"/api/orders/{order['id']}", headers=admin)
        assert response.status_code == 200

    def test_unknown_order(self, client, customer):
        response = client.get("/api/orders/missing", headers=customer)
        assert response.status_code == 404

    def test_invalid_token(self, client):
        response = client.get("/api/orders/myorders", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, token failed"


class TestAdminListing:
    def test_requires_admin(self, client, customer):
        response = client.get("/api/orders", headers=customer)

        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized as admin"

    def test_allowlisted_email_is_admin(self, client, place, customer):
        override_settings(admin_emails=frozenset({"asha@example.com"}))
        place(customer)

        response = client.get("/api/orders", headers=customer)
        assert response.status_code == 200

    def test_filters_by_status(self, client, admin, customer, other_customer, place):
        kept = place(customer)
        cancelled = place(other_customer)
        client.put(f"/api/orders/{cancelled['id']}/cancel", headers=other_customer)

        response = client.get("/api/orders", params={"status": "pending"}, headers=admin)

        body = response.json()
        assert [order["id"] for order in body["orders"]] == [kept["id"]]
        assert body["pagination"]["total"] == 1

    def test_filters_by_payment_status(self, client, admin, customer, place):
        place(customer)
        place(customer, paymentMethod="card", paymentResult={"id": "pay_9", "status": "completed"})

        response = client.get("/api/orders", params={"paymentStatus": "paid"}, headers=admin)

        orders = response.json()["orders"]
        assert len(orders) == 1
        assert orders[0]["paymentReference"] == "pay_9"


class TestCancelOrder:
    def test_cancel_restocks(self, client, customer, lamp, place):
        order = place(customer, quantity=3)
        assert _stock(lamp) == 7

        response = client.put(f"/api/orders/{order['id']}/cancel", json={"reason": "Found it cheaper"}, headers=customer)

        assert response.status_code == 200
        cancelled = response.json()["order"]
        assert cancelled["orderStatus"] == "cancelled"
        assert cancelled["cancellationReason"] == "Found it cheaper"
        assert cancelled["statusHistory"][-1]["status"] == "cancelled"
        assert _stock(lamp) == 10

    def test_cancel_without_body(self, client, customer, place):
        order = place(customer)

        response = client.put(f"/api/orders/{order['id']}/cancel", headers=customer)

        assert response.json()["order"]["cancellationReason"] == "Cancelled by user"

    def test_other_user_cannot_cancel(self, client, customer, other_customer, lamp, place):
        order = place(customer)

        response = client.put(f"/api/orders/{order['id']}/cancel", headers=other_customer)

        assert response.status_code == 403
        assert _stock(lamp) == 9

    def test_cannot_cancel_shipped(self, client, customer, admin, place):
        order = place(customer, paymentMethod="card", paymentResult={"id": "pay_1", "status": "completed"})
        client.put(f"/api/orders/{order['id']}/status", json={"status": "shipped"}, headers=admin)

        response = client.put(f"/api/orders/{order['id']}/cancel", headers=customer)

        assert response.status_code == 400
        assert response.json()["message"] == "Order cannot be cancelled once it is shipped"


class TestUpdateStatus:
    def test_ship_with_tracking(self, client, customer, admin, place):
        order = place(customer)
        client.put(f"/api/orders/{order['id']}/status", json={"status": "confirmed"}, headers=admin)
        client.put(f"/api/orders/{order['id']}/status", json={"status": "processing"}, headers=admin)

        response = client.put(
            f"/api/orders/{order['id']}/status",
            json={"status": "shipped", "trackingNumber": "TRK-77", "carrier": "BlueDart", "note": "Dispatched"},
            headers=admin,
        )

        assert response.status_code == 200
        updated = response.json()["order"]
        assert updated["orderStatus"] == "shipped"
        assert updated["trackingNumber"] == "TRK-77"
        assert updated["carrier"] == "BlueDart"
        assert [entry["status"] for entry in updated["statusHistory"]] == ["confirmed", "processing", "shipped"]

    def test_invalid_transition(self, client, customer, admin, place):
        order = place(customer)

        response = client.put(f"/api/orders/{order['id']}/status", json={"status": "delivered"}, headers=admin)

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot transition from pending to delivered"

    def test_unknown_status(self, client, customer, admin, place):
        order = place(customer)

        response = client.put(f"/api/orders/{order['id']}/status", json={"status": "lost"}, headers=admin)

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid status: lost"

    def test_requires_admin(self, client, customer, place):
        order = place(customer)

        response = client.put(f"/api/orders/{order['id']}/status", json={"status": "confirmed"}, headers=customer)
        assert response.status_code == 403
