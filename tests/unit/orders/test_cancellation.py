"""Unit tests for order cancellation.

Covers:
- ``CancellationPolicy``: only ``new`` orders, reason resolution.
- ``OrderService.cancel_order``: fields set, second attempt rejected,
  customer scoping, staff cancel.
"""

from __future__ import annotations

import pytest

from modules.orders.constants import DeliveryStatus
from modules.orders.dtos import CancelOrderDTO
from modules.orders.exceptions import NotCancelable, OrderNotFound
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.policies import CancellationPolicy

pytestmark = pytest.mark.unit

policy = CancellationPolicy()


class TestCancellationPolicy:
    @pytest.mark.parametrize("status", list(DeliveryStatus.values))
    def test_only_new_is_cancelable(self, status):
        assert policy.can_cancel(Order(delivery_status=status)) is (status == DeliveryStatus.NEW)

    def test_fixed_reason_stored_verbatim(self):
        assert policy.resolve_reason("Ordered by mistake") == "Ordered by mistake"

    def test_other_stores_customer_text(self):
        assert policy.resolve_reason("Other", "  Found it cheaper  ") == "Found it cheaper"

    def test_other_without_text_gets_default(self):
        assert policy.resolve_reason("Other", "   ") == "Cancelled by user"

    def test_unknown_reason_rejected(self):
        with pytest.raises(ValueError):
            policy.resolve_reason("Bored")


class TestCancelOrder:
    def test_customer_cancels_new_order(self, make_order, order_service, customer):
        order = make_order()

        cancelled = order_service.cancel_order(
            order.pk,
            CancelOrderDTO(reason="Changed my mind"),
            actor_id=customer.pk,
            customer_id=customer.pk,
        )

        cancelled.refresh_from_db()
        assert cancelled.delivery_status == DeliveryStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert cancelled.cancel_reason == "Changed my mind"
        assert OrderStatusHistory.objects.filter(
            order=order, new_status=DeliveryStatus.CANCELLED, actor=customer
        ).exists()

    def test_second_cancel_rejected(self, make_order, order_service, customer):
        order = make_order()
        dto = CancelOrderDTO(reason="Changed my mind")
        order_service.cancel_order(order.pk, dto, actor_id=customer.pk, customer_id=customer.pk)

        with pytest.raises(NotCancelable):
            order_service.cancel_order(order.pk, dto, actor_id=customer.pk, customer_id=customer.pk)

    @pytest.mark.parametrize(
        "path",
        [
            ["accepted"],
            ["accepted", "enroute"],
            ["accepted", "onway"],
            ["accepted", "enroute", "delivered"],
            ["failed"],
        ],
    )
    def test_cancel_after_new_rejected(self, make_order, order_service, customer, path):
        order = make_order()
        for status in path:
            order_service.transition(order, status)

        with pytest.raises(NotCancelable):
            order_service.cancel_order(
                order.pk, CancelOrderDTO(reason="Other"), actor_id=customer.pk
            )
        order.refresh_from_db()
        assert order.delivery_status == path[-1]
        assert order.cancelled_at is None

    def test_other_customer_cannot_cancel(self, make_order, order_service, other_customer):
        order = make_order()

        with pytest.raises(OrderNotFound):
            order_service.cancel_order(
                order.pk,
                CancelOrderDTO(reason="Changed my mind"),
                actor_id=other_customer.pk,
                customer_id=other_customer.pk,
            )

    def test_staff_cancel_with_other_reason(self, make_order, order_service, staff_user):
        order = make_order()

        cancelled = order_service.cancel_order(
            order.pk, CancelOrderDTO(reason="Other"), actor_id=staff_user.pk
        )

        assert cancelled.cancel_reason == "Cancelled by user"

    def test_unknown_reason_rejected_by_dto(self):
        with pytest.raises(ValueError):
            CancelOrderDTO(reason="Bored")
