"""Integration tests for the order API.

Tests:
- Checkout hand-off creates an order (201) and replays by Idempotency-Key (200).
- Customers only see their own orders; staff see all.
- Cancel is allowed only while the order is new.
"""

from __future__ import annotations

import pytest

from modules.orders.models import Order

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"

CHECKOUT = {
    "items_price": "430.00",
    "shipping_price": "20.00",
    "payment_method": "COD",
    "shop_name": "Lakshmi Stores",
    "shop_latitude": "17.385000",
    "shop_longitude": "78.486700",
    "shipping_name": "Asha",
    "shipping_phone": "9876512345",
    "shipping_address": "2-14 Temple Road",
    "shipping_city": "Kothur",
    "shipping_latitude": "17.400000",
    "shipping_longitude": "78.500000",
}


class TestCreateOrder:
    def test_creates_new_order(self, client_for, customer):
        response = client_for(customer).post(ORDERS_URL, CHECKOUT, format="json")

        assert response.status_code == 201
        assert response.data["delivery_status"] == "new"
        assert response.data["total_price"] == "450.00"
        assert response.data["customer_id"] == customer.pk
        assert response.data["can_cancel"] is True
        assert response.data["is_paid"] is False
        assert [h["new_status"] for h in response.data["status_history"]] == ["new"]

    def test_idempotent_replay(self, client_for, customer):
        client = client_for(customer)

        first = client.post(
            ORDERS_URL, CHECKOUT, format="json", HTTP_IDEMPOTENCY_KEY="checkout-42"
        )
        second = client.post(
            ORDERS_URL, CHECKOUT, format="json", HTTP_IDEMPOTENCY_KEY="checkout-42"
        )

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.data["id"] == first.data["id"]
        assert Order.objects.count() == 1

    def test_fast_delivery_surcharge(self, client_for, customer):
        payload = {**CHECKOUT, "delivery_speed": "fast"}

        response = client_for(customer).post(ORDERS_URL, payload, format="json")

        assert response.status_code == 201
        assert response.data["shipping_extra_price"] == "20.00"
        assert response.data["total_price"] == "470.00"

    def test_outside_delivery_radius(self, client_for, customer):
        payload = {**CHECKOUT, "shipping_latitude": "19.076000", "shipping_longitude": "72.877700"}

        response = client_for(customer).post(ORDERS_URL, payload, format="json")

        assert response.status_code == 400
        assert response.data["code"] == "out_of_delivery_radius"
        assert not Order.objects.exists()

    def test_requires_authentication(self, api_client):
        response = api_client.post(ORDERS_URL, CHECKOUT, format="json")

        assert response.status_code == 401


class TestReadOrders:
    def test_customer_sees_only_own_orders(self, client_for, make_order, customer, other_customer):
        mine = make_order()
        make_order(owner=other_customer)

        response = client_for(customer).get(ORDERS_URL)

        assert response.status_code == 200
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == mine.pk

    def test_other_customers_order_is_not_found(self, client_for, make_order, other_customer):
        order = make_order()

        response = client_for(other_customer).get(f"{ORDERS_URL}{order.pk}/")

        assert response.status_code == 404
        assert response.data["code"] == "not_found"

    def test_staff_reads_any_order(self, client_for, make_order, staff_user, other_customer):
        make_order()
        make_order(owner=other_customer)

        response = client_for(staff_user).get(ORDERS_URL)

        assert response.data["count"] == 2

    def test_filter_by_status(self, client_for, make_order, customer, deliver, rider):
        deliver(make_order(), rider)
        make_order()

        response = client_for(customer).get(ORDERS_URL, {"status": "delivered"})

        assert response.data["count"] == 1
        assert response.data["results"][0]["delivery_status"] == "delivered"


class TestCancelOrder:
    def test_cancel_new_order(self, client_for, make_order, customer):
        order = make_order()

        response = client_for(customer).post(
            f"{ORDERS_URL}{order.pk}/cancel/", {"reason": "Changed my mind"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["delivery_status"] == "cancelled"
        assert response.data["cancel_reason"] == "Changed my mind"
        assert response.data["can_cancel"] is False

    def test_cancel_twice_conflicts(self, client_for, make_order, customer):
        order = make_order()
        client = client_for(customer)
        url = f"{ORDERS_URL}{order.pk}/cancel/"
        client.post(url, {"reason": "Changed my mind"}, format="json")

        response = client.post(url, {"reason": "Changed my mind"}, format="json")

        assert response.status_code == 409
        assert response.data["code"] == "not_cancelable"

    def test_cancel_after_accept_conflicts(self, client_for, make_order, customer, delivery_service, rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        response = client_for(customer).post(
            f"{ORDERS_URL}{order.pk}/cancel/", {"reason": "Other"}, format="json"
        )

        assert response.status_code == 409
        order.refresh_from_db()
        assert order.delivery_status == "accepted"

    def test_unknown_reason_rejected(self, client_for, make_order, customer):
        order = make_order()

        response = client_for(customer).post(
            f"{ORDERS_URL}{order.pk}/cancel/", {"reason": "Too expensive"}, format="json"
        )

        assert response.status_code == 400
        assert "reason" in response.data
