"""Integration tests for the return endpoints (customer, rider, admin)."""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone

from modules.orders.models import Order

pytestmark = pytest.mark.integration

REQUEST = {
    "reason": "Wrong size",
    "bank_account_name": "Asha",
    "bank_account_number": "123456789012",
    "ifsc": "sbin0001234",
}


@pytest.fixture()
def delivered_order(make_order, deliver, rider):
    return deliver(make_order(), rider)


@pytest.fixture()
def customer_client(client_for, customer):
    return client_for(customer)


@pytest.fixture()
def rider_client(client_for, rider):
    return client_for(rider.user)


@pytest.fixture()
def staff_client(client_for, staff_user):
    return client_for(staff_user)


@pytest.fixture()
def return_id(customer_client, delivered_order):
    response = customer_client.post(
        f"/api/v1/orders/{delivered_order.pk}/return/", REQUEST, format="json"
    )
    return response.data["id"]


class TestCustomerReturns:
    def test_request_return(self, customer_client, delivered_order):
        response = customer_client.post(
            f"/api/v1/orders/{delivered_order.pk}/return/", REQUEST, format="json"
        )

        assert response.status_code == 201
        assert response.data["status"] == "pending"
        assert response.data["ifsc"] == "SBIN0001234"
        assert response.data["order_total"] == "450.00"

    def test_window_closed(self, customer_client, delivered_order):
        Order.objects.filter(pk=delivered_order.pk).update(
            delivered_at=timezone.now() - timedelta(days=8)
        )

        response = customer_client.post(
            f"/api/v1/orders/{delivered_order.pk}/return/", REQUEST, format="json"
        )

        assert response.status_code == 409
        assert response.data["code"] == "not_eligible"

    def test_second_request_conflicts(self, customer_client, delivered_order, return_id):
        response = customer_client.post(
            f"/api/v1/orders/{delivered_order.pk}/return/", REQUEST, format="json"
        )

        assert response.status_code == 409

    def test_invalid_ifsc(self, customer_client, delivered_order):
        response = customer_client.post(
            f"/api/v1/orders/{delivered_order.pk}/return/",
            {**REQUEST, "ifsc": "1234"},
            format="json",
        )

        assert response.status_code == 400
        assert "ifsc" in response.data

    def test_order_detail_reports_can_return(self, customer_client, delivered_order):
        response = customer_client.get(f"/api/v1/orders/{delivered_order.pk}/")

        assert response.data["can_return"] is True

    def test_my_returns(self, customer_client, return_id):
        response = customer_client.get("/api/v1/returns/my/")

        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == return_id


class TestRiderPickups:
    def test_delivering_rider_sees_pickup(self, rider_client, return_id):
        response = rider_client.get("/api/v1/returns/pickups/")

        assert [r["id"] for r in response.data["results"]] == [return_id]
        assert "bank_account_number" not in response.data["results"][0]

    def test_accept_and_advance(self, rider_client, return_id):
        accepted = rider_client.post(f"/api/v1/returns/{return_id}/accept/")
        picked = rider_client.post(
            f"/api/v1/returns/{return_id}/status/", {"status": "picked_up"}, format="json"
        )
        at_shop = rider_client.post(
            f"/api/v1/returns/{return_id}/status/",
            {"status": "delivered_to_shop"},
            format="json",
        )

        assert accepted.data["status"] == "accepted"
        assert picked.data["status"] == "picked_up"
        assert at_shop.data["status"] == "delivered_to_shop"
        completed = rider_client.get("/api/v1/returns/completed/")
        assert completed.data["count"] == 1

    def test_rider_cannot_complete(self, rider_client, return_id):
        rider_client.post(f"/api/v1/returns/{return_id}/accept/")

        response = rider_client.post(
            f"/api/v1/returns/{return_id}/status/", {"status": "completed"}, format="json"
        )

        assert response.status_code == 400

    def test_unclaimed_return_is_not_open_to_other_riders(self, client_for, other_rider, return_id):
        response = client_for(other_rider.user).post(f"/api/v1/returns/{return_id}/accept/")

        assert response.status_code == 403
        assert response.data["code"] == "not_pickup_rider"

    def test_other_rider_forbidden(self, rider_client, client_for, other_rider, return_id):
        rider_client.post(f"/api/v1/returns/{return_id}/accept/")

        response = client_for(other_rider.user).post(f"/api/v1/returns/{return_id}/accept/")

        assert response.status_code == 403
        assert response.data["code"] == "not_pickup_rider"


class TestAdminReturns:
    def test_refund_flow(self, staff_client, rider_client, return_id):
        rider_client.post(f"/api/v1/returns/{return_id}/accept/")
        url = f"/api/v1/admin/returns/{return_id}/mark-refunded/"

        response = staff_client.post(
            url, {"amount": "150.00", "mode": "BANK", "reference": "NEFT77"}, format="json"
        )
        again = staff_client.post(url, {"amount": "150.00"}, format="json")

        assert response.status_code == 200
        assert response.data["status"] == "completed"
        assert response.data["refund_amount"] == "150.00"
        assert again.status_code == 409
        assert again.data["code"] == "already_finalized"

    def test_refund_from_pending_conflicts(self, staff_client, return_id):
        response = staff_client.post(
            f"/api/v1/admin/returns/{return_id}/mark-refunded/", {"amount": "10.00"}, format="json"
        )

        assert response.status_code == 409
        assert response.data["code"] == "invalid_return_transition"

    def test_refund_above_total(self, staff_client, rider_client, return_id):
        rider_client.post(f"/api/v1/returns/{return_id}/accept/")

        response = staff_client.post(
            f"/api/v1/admin/returns/{return_id}/mark-refunded/", {"amount": "999.00"}, format="json"
        )

        assert response.status_code == 409
        assert response.data["code"] == "invalid_refund"

    def test_zero_refund_rejected(self, staff_client, rider_client, return_id):
        rider_client.post(f"/api/v1/returns/{return_id}/accept/")

        response = staff_client.post(
            f"/api/v1/admin/returns/{return_id}/mark-refunded/", {"amount": "0.00"}, format="json"
        )

        assert response.status_code == 400

    def test_reject_and_list(self, staff_client, return_id):
        rejected = staff_client.post(
            f"/api/v1/admin/returns/{return_id}/reject/", {"note": "Item used"}, format="json"
        )
        listed = staff_client.get("/api/v1/admin/returns/", {"status": "rejected"})

        assert rejected.data["status"] == "rejected"
        assert listed.data["count"] == 1

    def test_unknown_return(self, staff_client):
        response = staff_client.post("/api/v1/admin/returns/999999/reject/", {}, format="json")

        assert response.status_code == 404

    def test_customer_cannot_refund(self, customer_client, return_id):
        response = customer_client.post(
            f"/api/v1/admin/returns/{return_id}/mark-refunded/", {"amount": "10.00"}, format="json"
        )

        assert response.status_code == 403
