"""Unit tests for DeliveryService.

Covers:
- Accept: single active assignment, repeated accept, lost race.
- Rider progress guarded by the active assignment.
- Delivery books COD exactly once; failure books nothing.
- Operations: reassign and fail.
- Rider board, history and daily stats.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.core.cache import cache

from modules.core.models import OutboxEvent
from modules.deliveries.constants import LIVE_LOCATION_CACHE_KEY, AssignmentEndReason
from modules.deliveries.dtos import FailDeliveryDTO, PromiseEtaDTO, RejectOfferDTO
from modules.deliveries.exceptions import AlreadyAssigned, NotAssignedRider, OfferUnavailable
from modules.deliveries.models import DeliveryAssignment
from modules.ledger.models import CODRecord
from modules.orders.constants import DeliveryStatus
from modules.orders.dtos import CancelOrderDTO
from modules.orders.exceptions import InvalidDeliveryTransition
from modules.riders.exceptions import RiderNotFound

pytestmark = pytest.mark.unit


class TestAccept:
    def test_accept_assigns_and_moves_to_accepted(self, make_order, delivery_service, rider):
        order = make_order()

        accepted = delivery_service.accept(order.pk, rider)

        assert accepted.delivery_status == DeliveryStatus.ACCEPTED
        assignment = DeliveryAssignment.objects.get(order=order, is_active=True)
        assert assignment.rider == rider
        assert assignment.customer_latitude == order.shipping_latitude
        assert accepted.status_history.first().notes == "Accepted by Ravi"

    def test_repeated_accept_is_noop(self, make_order, delivery_service, rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        delivery_service.accept(order.pk, rider)

        assert DeliveryAssignment.objects.filter(order=order).count() == 1

    def test_second_rider_loses(self, make_order, delivery_service, rider, other_rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        with pytest.raises(AlreadyAssigned):
            delivery_service.accept(order.pk, other_rider)

        assert DeliveryAssignment.objects.get(order=order, is_active=True).rider == rider

    def test_cancelled_order_cannot_be_accepted(
        self, make_order, delivery_service, order_service, rider, customer
    ):
        order = make_order()
        order_service.cancel_order(order.pk, CancelOrderDTO(reason="Changed my mind"), actor_id=customer.pk)

        with pytest.raises(OfferUnavailable):
            delivery_service.accept(order.pk, rider)
        assert not DeliveryAssignment.objects.filter(order=order).exists()

    def test_rejected_offer_leaves_the_board(self, make_order, delivery_service, rider, other_rider):
        order = make_order()

        delivery_service.reject_offer(order.pk, rider, RejectOfferDTO(reason="far"))

        assert delivery_service.rider_orders(rider)["new"]["normal"] == []
        assert [o.pk for o in delivery_service.rider_orders(other_rider)["new"]["normal"]] == [order.pk]

    def test_reject_accepted_order_unavailable(self, make_order, delivery_service, rider, other_rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        with pytest.raises(OfferUnavailable):
            delivery_service.reject_offer(order.pk, other_rider, RejectOfferDTO(reason="busy"))


class TestProgress:
    def test_depart_and_on_the_way(self, make_order, delivery_service, rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        assert delivery_service.depart(order.pk, rider).delivery_status == DeliveryStatus.ENROUTE
        assert delivery_service.on_the_way(order.pk, rider).delivery_status == DeliveryStatus.ONWAY

    def test_only_holder_may_progress(self, make_order, delivery_service, rider, other_rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        with pytest.raises(NotAssignedRider):
            delivery_service.depart(order.pk, other_rider)

    def test_promise_eta(self, make_order, delivery_service, rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        assignment = delivery_service.promise_eta(order.pk, rider, PromiseEtaDTO(minutes=10))

        assert assignment.promised_eta_minutes == 10

    def test_eta_choice_is_validated(self):
        with pytest.raises(ValueError):
            PromiseEtaDTO(minutes=15)


class TestMarkDelivered:
    def test_cod_delivery_books_one_record(self, make_order, deliver, ledger_service, rider):
        before = ledger_service.cash_in_hand(rider.pk)
        order = make_order()

        delivered = deliver(order, rider)

        assert delivered.delivery_status == DeliveryStatus.DELIVERED
        assert delivered.delivered_at is not None
        record = CODRecord.objects.get(order=order)
        assert record.amount == Decimal("450.00")
        assert record.status == "unsettled"
        assert record.rider == rider
        assert ledger_service.cash_in_hand(rider.pk) - before == Decimal("450.00")

    def test_repeated_delivery_is_noop(self, make_order, deliver, delivery_service, rider):
        order = deliver(make_order(), rider)

        again = delivery_service.mark_delivered(order.pk, rider)

        assert again.delivery_status == DeliveryStatus.DELIVERED
        assert CODRecord.objects.filter(order=order).count() == 1
        assert OutboxEvent.objects.filter(
            aggregate_id=str(order.pk), event_type="OrderDelivered"
        ).count() == 1

    def test_online_delivery_books_nothing(self, make_order, deliver, rider):
        order = deliver(make_order(payment_method="Online", paid=True), rider)

        assert not CODRecord.objects.filter(order=order).exists()

    def test_other_rider_cannot_deliver(self, make_order, deliver, delivery_service, rider, other_rider):
        order = deliver(make_order(), rider)

        with pytest.raises(NotAssignedRider):
            delivery_service.mark_delivered(order.pk, other_rider)

    def test_cannot_deliver_before_leaving_shop(self, make_order, delivery_service, rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)

        with pytest.raises(InvalidDeliveryTransition):
            delivery_service.mark_delivered(order.pk, rider)
        assert not CODRecord.objects.filter(order=order).exists()

    def test_delivery_closes_assignment(self, make_order, deliver, rider):
        order = deliver(make_order(), rider)

        assignment = DeliveryAssignment.objects.get(order=order)
        assert not assignment.is_active
        assert assignment.end_reason == AssignmentEndReason.DELIVERED
        assert assignment.ended_at == order.delivered_at

    def test_live_sample_dropped_after_commit(
        self, make_order, delivery_service, rider, django_capture_on_commit_callbacks
    ):
        order = make_order()
        delivery_service.accept(order.pk, rider)
        delivery_service.depart(order.pk, rider)
        delivery_service.record_location(rider, Decimal("17.399000"), Decimal("78.500000"))
        assignment = DeliveryAssignment.objects.get(order=order)
        key = LIVE_LOCATION_CACHE_KEY.format(assignment_id=assignment.pk)
        assert cache.get(key) is not None

        with django_capture_on_commit_callbacks(execute=True):
            delivery_service.mark_delivered(order.pk, rider)

        assert cache.get(key) is None


class TestMarkFailed:
    def test_rider_fails_in_transit(self, make_order, delivery_service, rider):
        order = make_order()
        delivery_service.accept(order.pk, rider)
        delivery_service.depart(order.pk, rider)

        failed = delivery_service.mark_failed(
            order.pk,
            FailDeliveryDTO(reason="no_one", note="Gate locked"),
            actor_id=rider.user_id,
            rider=rider,
        )

        assert failed.delivery_status == DeliveryStatus.FAILED
        assert failed.failure_reason == "No one available to receive: Gate locked"
        assert not CODRecord.objects.filter(order=order).exists()
        assert DeliveryAssignment.objects.get(order=order).end_reason == AssignmentEndReason.FAILED

    def test_rider_cannot_fail_unheld_order(self, make_order, delivery_service, rider):
        order = make_order()

        with pytest.raises(NotAssignedRider):
            delivery_service.mark_failed(
                order.pk, FailDeliveryDTO(reason="no_one"), actor_id=rider.user_id, rider=rider
            )

    def test_staff_fails_new_order(self, make_order, delivery_service, staff_user):
        order = make_order()

        failed = delivery_service.mark_failed(
            order.pk, FailDeliveryDTO(reason="ops"), actor_id=staff_user.pk
        )

        assert failed.failure_reason == "Failed by operations"

    def test_terminal_order_cannot_fail(self, make_order, deliver, delivery_service, staff_user, rider):
        order = deliver(make_order(), rider)

        with pytest.raises(InvalidDeliveryTransition):
            delivery_service.mark_failed(order.pk, FailDeliveryDTO(reason="ops"), actor_id=staff_user.pk)


class TestReassign:
    def test_assign_new_order(self, make_order, delivery_service, rider, staff_user):
        order = make_order()

        assigned = delivery_service.reassign(order.pk, rider.pk, actor_id=staff_user.pk)

        assert assigned.delivery_status == DeliveryStatus.ACCEPTED
        assert DeliveryAssignment.objects.get(order=order, is_active=True).rider == rider

    def test_replace_rider_in_transit(self, make_order, delivery_service, rider, other_rider, staff_user):
        order = make_order()
        delivery_service.accept(order.pk, rider)
        delivery_service.depart(order.pk, rider)

        moved = delivery_service.reassign(order.pk, other_rider.pk, actor_id=staff_user.pk)

        assert moved.delivery_status == DeliveryStatus.ENROUTE
        assignments = DeliveryAssignment.objects.filter(order=order)
        assert assignments.get(is_active=True).rider == other_rider
        assert assignments.get(rider=rider).end_reason == AssignmentEndReason.REASSIGNED
        assert OutboxEvent.objects.filter(
            aggregate_id=str(order.pk), event_type="RiderReassigned"
        ).exists()

        with pytest.raises(NotAssignedRider):
            delivery_service.mark_delivered(order.pk, rider)

    def test_inactive_rider_rejected(self, make_order, delivery_service, make_rider, staff_user):
        order = make_order()
        retired = make_rider("Retired", is_active=False)

        with pytest.raises(RiderNotFound):
            delivery_service.reassign(order.pk, retired.pk, actor_id=staff_user.pk)

    def test_terminal_order_rejected(self, make_order, deliver, delivery_service, rider, other_rider, staff_user):
        order = deliver(make_order(), rider)

        with pytest.raises(InvalidDeliveryTransition):
            delivery_service.reassign(order.pk, other_rider.pk, actor_id=staff_user.pk)


class TestRiderViews:
    def test_board_groups_fast_first_oldest_first(self, make_order, delivery_service, rider):
        first_normal = make_order()
        fast = make_order(delivery_speed="fast")
        second_normal = make_order()
        carrying = make_order()
        delivery_service.accept(carrying.pk, rider)

        board = delivery_service.rider_orders(rider)

        assert list(board["new"]) == ["fast", "normal"]
        assert [o.pk for o in board["new"]["fast"]] == [fast.pk]
        assert [o.pk for o in board["new"]["normal"]] == [first_normal.pk, second_normal.pk]
        assert [o.pk for o in board["active"]["normal"]] == [carrying.pk]

    def test_history_by_outcome(self, make_order, deliver, delivery_service, rider, staff_user):
        delivered = deliver(make_order(), rider)
        failing = make_order()
        delivery_service.accept(failing.pk, rider)
        delivery_service.mark_failed(failing.pk, FailDeliveryDTO(reason="ops"), actor_id=staff_user.pk)

        assert [a.order_id for a in delivery_service.history(rider, "delivered")] == [delivered.pk]
        assert [a.order_id for a in delivery_service.history(rider, "failed")] == [failing.pk]
        assert delivery_service.history(rider).count() == 2

    def test_stats_for_today(self, make_order, deliver, delivery_service, rider):
        deliver(make_order(), rider)
        deliver(make_order(items_price=Decimal("80.00")), rider)
        delivery_service.reject_offer(make_order().pk, rider, RejectOfferDTO(reason="busy"))

        stats = delivery_service.rider_stats(rider)

        assert stats.delivered == 2
        assert stats.failed == 0
        assert stats.rejected == 1
        assert stats.cod_total == Decimal("550.00")
