"""Integration tests for the rider app and operations delivery endpoints.

Tests:
- The rider board, accept race, reject, progress, ETA buttons and delivery.
- Location updates feed the customer's live-location poll.
- Staff assign and fail orders; riders only reach rider endpoints.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.ledger.models import CODRecord

pytestmark = pytest.mark.integration

BOARD_URL = "/api/v1/delivery/orders/"
LOCATION_URL = "/api/v1/delivery/location/"
STATS_URL = "/api/v1/delivery/stats/"
HISTORY_URL = "/api/v1/delivery/history/"


def action_url(order, name):
    return f"{BOARD_URL}{order.pk}/{name}/"


@pytest.fixture()
def rider_client(client_for, rider):
    return client_for(rider.user)


class TestRiderBoard:
    def test_board_groups_by_speed(self, rider_client, make_order):
        fast = make_order(delivery_speed="fast")
        normal = make_order()

        response = rider_client.get(BOARD_URL)

        assert response.status_code == 200
        assert [o["id"] for o in response.data["new"]["fast"]] == [fast.pk]
        assert [o["id"] for o in response.data["new"]["normal"]] == [normal.pk]
        assert response.data["active"]["fast"] == []
        assert response.data["active"]["normal"] == []

    def test_customer_is_not_a_rider(self, client_for, customer):
        response = client_for(customer).get(BOARD_URL)

        assert response.status_code == 403

    def test_inactive_rider_is_refused(self, client_for, make_rider):
        idle = make_rider("Mahesh", is_active=False)

        response = client_for(idle.user).get(BOARD_URL)

        assert response.status_code == 403


class TestOffers:
    def test_accept_moves_order_to_active(self, rider_client, make_order):
        order = make_order()

        response = rider_client.post(action_url(order, "accept"))

        assert response.status_code == 200
        assert response.data["delivery_status"] == "accepted"
        board = rider_client.get(BOARD_URL).data
        assert [o["id"] for o in board["active"]["normal"]] == [order.pk]
        assert board["new"]["normal"] == []

    def test_second_rider_gets_conflict(self, rider_client, client_for, other_rider, make_order):
        order = make_order()
        rider_client.post(action_url(order, "accept"))

        response = client_for(other_rider.user).post(action_url(order, "accept"))

        assert response.status_code == 409
        assert response.data["code"] == "already_assigned"

    def test_reject_hides_offer(self, rider_client, make_order):
        order = make_order()

        response = rider_client.post(action_url(order, "reject"), {"reason": "far"}, format="json")

        assert response.status_code == 204
        board = rider_client.get(BOARD_URL).data
        assert board["new"]["normal"] == []

    def test_reject_needs_known_reason(self, rider_client, make_order):
        order = make_order()

        response = rider_client.post(action_url(order, "reject"), {"reason": "rain"}, format="json")

        assert response.status_code == 400
        assert "reason" in response.data

    def test_unknown_order(self, rider_client):
        response = rider_client.post(f"{BOARD_URL}999999/accept/")

        assert response.status_code == 404


class TestProgress:
    def test_full_cod_delivery(self, rider_client, make_order, rider):
        order = make_order()
        rider_client.post(action_url(order, "accept"))
        rider_client.post(action_url(order, "depart"))
        onway = rider_client.post(action_url(order, "onway"))

        response = rider_client.post(action_url(order, "deliver"))

        assert onway.data["delivery_status"] == "onway"
        assert response.status_code == 200
        assert response.data["delivery_status"] == "delivered"
        assert response.data["is_paid"] is True
        record = CODRecord.objects.get(order=order)
        assert record.amount == Decimal("450.00")
        assert record.rider_id == rider.pk

    def test_promise_eta(self, rider_client, make_order):
        order = make_order()
        rider_client.post(action_url(order, "accept"))

        response = rider_client.post(action_url(order, "eta"), {"minutes": 10}, format="json")

        assert response.status_code == 200
        assert response.data["promised_eta_minutes"] == 10

    def test_eta_outside_buttons_rejected(self, rider_client, make_order):
        order = make_order()
        rider_client.post(action_url(order, "accept"))

        response = rider_client.post(action_url(order, "eta"), {"minutes": 7}, format="json")

        assert response.status_code == 400

    def test_other_rider_cannot_deliver(self, rider_client, client_for, other_rider, make_order):
        order = make_order()
        rider_client.post(action_url(order, "accept"))
        rider_client.post(action_url(order, "depart"))

        response = client_for(other_rider.user).post(action_url(order, "deliver"))

        assert response.status_code == 403
        assert response.data["code"] == "not_assigned_rider"

    def test_rider_fails_in_transit(self, rider_client, make_order):
        order = make_order()
        rider_client.post(action_url(order, "accept"))
        rider_client.post(action_url(order, "depart"))

        response = rider_client.post(
            action_url(order, "fail"), {"reason": "no_one", "note": "Gate locked"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["delivery_status"] == "failed"
        assert "Gate locked" in response.data["failure_reason"]

    def test_history_and_stats(self, rider_client, make_order, deliver, rider):
        deliver(make_order(), rider)
        deliver(make_order(payment_method="Online", paid=True), rider)

        history = rider_client.get(HISTORY_URL, {"status": "delivered"})
        stats = rider_client.get(STATS_URL)

        assert history.data["count"] == 2
        assert stats.status_code == 200
        assert stats.data["delivered"] == 2
        assert Decimal(stats.data["cod_total"]) == Decimal("450.00")

    def test_stats_bad_date(self, rider_client):
        response = rider_client.get(STATS_URL, {"date": "17-10-2026"})

        assert response.status_code == 400
        assert "date" in response.data


class TestLiveLocation:
    def test_location_update_reaches_customer(self, rider_client, client_for, customer, make_order):
        order = make_order()
        rider_client.post(action_url(order, "accept"))

        update = rider_client.post(
            LOCATION_URL, {"latitude": "17.390000", "longitude": "78.490000"}, format="json"
        )
        response = client_for(customer).get(f"/api/v1/orders/{order.pk}/live-location/")

        assert update.data == {"updated": 1}
        assert response.status_code == 200
        assert response.data["state"] == "tracking"
        assert response.data["delivery_partner"]["latitude"] == pytest.approx(17.39)
        assert response.data["is_stale"] is False

    def test_idle_rider_updates_nothing(self, rider_client):
        response = rider_client.post(
            LOCATION_URL, {"latitude": "17.390000", "longitude": "78.490000"}, format="json"
        )

        assert response.status_code == 200
        assert response.data == {"updated": 0}

    def test_out_of_range_coordinate(self, rider_client):
        response = rider_client.post(
            LOCATION_URL, {"latitude": "91.000000", "longitude": "78.490000"}, format="json"
        )

        assert response.status_code == 400

    def test_new_order_has_no_rider(self, client_for, customer, make_order):
        order = make_order()

        response = client_for(customer).get(f"/api/v1/orders/{order.pk}/live-location/")

        assert response.data["state"] == "no_active_rider"

    def test_delivered_order_is_closed(self, client_for, customer, make_order, deliver, rider):
        order = deliver(make_order(), rider)

        response = client_for(customer).get(f"/api/v1/orders/{order.pk}/live-location/")

        assert response.data["state"] == "closed"

    def test_other_customer_cannot_track(self, client_for, other_customer, make_order):
        order = make_order()

        response = client_for(other_customer).get(f"/api/v1/orders/{order.pk}/live-location/")

        assert response.status_code == 404

    def test_tracking_config(self, client_for, customer, settings):
        settings.LOCATION_POLL_INTERVAL_MS = 5000

        response = client_for(customer).get("/api/v1/tracking/config/")

        assert response.status_code == 200
        assert response.data["location_poll_interval_ms"] == 5000
        assert response.data["order_poll_interval_ms"] == settings.ORDER_POLL_INTERVAL_MS
        assert response.data["stale_after_seconds"] == settings.LIVE_LOCATION_STALE_AFTER_SECONDS


class TestOperations:
    def test_staff_assigns_new_order(self, client_for, staff_user, make_order, rider):
        order = make_order()

        response = client_for(staff_user).post(
            f"/api/v1/admin/orders/{order.pk}/assign/", {"rider_id": rider.pk}, format="json"
        )

        assert response.status_code == 200
        assert response.data["delivery_status"] == "accepted"

    def test_assign_unknown_rider(self, client_for, staff_user, make_order):
        order = make_order()

        response = client_for(staff_user).post(
            f"/api/v1/admin/orders/{order.pk}/assign/", {"rider_id": 999999}, format="json"
        )

        assert response.status_code == 404

    def test_staff_fails_new_order_with_default_reason(self, client_for, staff_user, make_order):
        order = make_order()

        response = client_for(staff_user).post(f"/api/v1/admin/orders/{order.pk}/fail/")

        assert response.status_code == 200
        assert response.data["delivery_status"] == "failed"

    def test_rider_cannot_use_admin_endpoints(self, rider_client, make_order, rider):
        order = make_order()

        response = rider_client.post(
            f"/api/v1/admin/orders/{order.pk}/assign/", {"rider_id": rider.pk}, format="json"
        )

        assert response.status_code == 403

    def test_rider_order_overview(self, client_for, staff_user, make_order, deliver, rider):
        deliver(make_order(), rider)
        make_order()

        response = client_for(staff_user).get(
            f"/api/v1/admin/riders/{rider.pk}/orders/", {"period": "today"}
        )

        assert response.status_code == 200
        assert response.data["count"] == 1

    def test_overview_rejects_unknown_period(self, client_for, staff_user, rider):
        response = client_for(staff_user).get(
            f"/api/v1/admin/riders/{rider.pk}/orders/", {"period": "decade"}
        )

        assert response.status_code == 400
        assert "period" in response.data
