"""Integration tests for the error body shared by every endpoint."""

import pytest

pytestmark = pytest.mark.integration


class TestDomainErrorFormat:
    def test_state_conflict_has_detail_and_code(self, client_for, customer, make_order, staff_user):
        order = make_order()
        client_for(staff_user).post(
            f"/api/v1/admin/orders/{order.pk}/fail/", {"reason": "no_one"}, format="json"
        )

        response = client_for(customer).post(
            f"/api/v1/orders/{order.pk}/cancel/",
            {"reason": "Changed my mind"},
            format="json",
        )

        assert response.status_code == 409
        assert response.data["code"] == "not_cancelable"
        assert "detail" in response.data

    def test_not_found_has_detail_and_code(self, client_for, customer):
        response = client_for(customer).get("/api/v1/orders/999999/")

        assert response.status_code == 404
        assert response.data["code"] == "not_found"

    def test_validation_error_lists_fields(self, client_for, customer):
        response = client_for(customer).post(
            "/api/v1/orders/", {"payment_method": "Cheque"}, format="json"
        )

        assert response.status_code == 400
        assert "items_price" in response.data
        assert "payment_method" in response.data
