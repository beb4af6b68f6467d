"""COD ledger concurrency integration tests.

Proves that the row locks taken by ``DeliveryService.mark_delivered`` and
``CODLedgerService.request_payout`` serialize racing requests:

- a rider's app retrying "delivered" at once books one COD record;
- two payout taps at once settle one batch, never a record twice.

Uses ``TransactionTestCase`` so each thread sees committed data.  Needs a
backend with ``SELECT ... FOR UPDATE`` (PostgreSQL, MySQL); SQLite skips.
"""

from __future__ import annotations

import logging
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

import django
from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TransactionTestCase
from django.utils import timezone

from modules.deliveries.views import build_delivery_service
from modules.ledger.constants import CODStatus
from modules.ledger.exceptions import InsufficientBatch
from modules.ledger.models import CODRecord, Settlement
from modules.ledger.views import build_ledger_service
from modules.orders.constants import DeliveryStatus
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.riders.models import RiderProfile

logger = logging.getLogger(__name__)

User = get_user_model()

BATCH_SIZE = 20
NUM_WORKERS = 2


def _race(target, workers=NUM_WORKERS):
    """Start *workers* calls of *target* together and collect the results."""
    barrier = threading.Barrier(workers)

    def _run(thread_id):
        django.db.connections.close_all()
        try:
            barrier.wait()
            return target(thread_id)
        finally:
            django.db.connections.close_all()

    results = []
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(_run, i): i for i in range(workers)}
        for future in as_completed(futures):
            results.append(future.result())
    return results


@unittest.skipUnless(
    connection.features.has_select_for_update, "needs row-level locking"
)
class TestLedgerConcurrency(TransactionTestCase):
    """Prove one COD record per order and one settlement per batch."""

    def setUp(self):
        self.customer = User.objects.create_user(username="race-customer", password="x")
        self.rider = RiderProfile.objects.create(
            user=User.objects.create_user(username="race-rider", password="x"),
            name="Ravi",
        )

    def _delivered_in_thread(self, order_id):
        def _deliver(thread_id):
            build_delivery_service().mark_delivered(order_id, self.rider)
            logger.warning("Thread %d: delivered", thread_id)
            return "delivered"

        return _deliver

    def _payout_in_thread(self, thread_id):
        try:
            build_ledger_service().request_payout(self.rider.pk)
            logger.warning("Thread %d: payout requested", thread_id)
            return "settled"
        except InsufficientBatch:
            logger.warning("Thread %d: InsufficientBatch (expected)", thread_id)
            return "insufficient"

    def test_concurrent_delivery_books_one_record(self):
        order = OrderService(order_repository=OrderDjangoRepository()).create_order(
            CreateOrderDTO(
                customer_id=self.customer.pk,
                items_price=Decimal("430.00"),
                shipping_price=Decimal("20.00"),
                payment_method="COD",
            )
        )
        service = build_delivery_service()
        service.accept(order.pk, self.rider)
        service.depart(order.pk, self.rider)

        results = _race(self._delivered_in_thread(order.pk))

        self.assertEqual(results, ["delivered"] * NUM_WORKERS)
        self.assertEqual(CODRecord.objects.filter(order=order).count(), 1)
        record = CODRecord.objects.get(order=order)
        self.assertEqual(record.amount, Decimal("450.00"))

    def test_concurrent_payouts_settle_one_batch(self):
        ledger = build_ledger_service()
        for _ in range(BATCH_SIZE):
            order = Order.objects.create(
                customer=self.customer,
                items_price=Decimal("100.00"),
                total_price=Decimal("100.00"),
                payment_method="COD",
                delivery_status=DeliveryStatus.DELIVERED,
                delivered_at=timezone.now(),
            )
            ledger.record_collection(order, self.rider.pk)

        results = _race(self._payout_in_thread)

        self.assertEqual(sorted(results), ["insufficient", "settled"])
        self.assertEqual(Settlement.objects.count(), 1)
        settlement = Settlement.objects.get()
        self.assertEqual(settlement.total_amount, Decimal("2000.00"))
        self.assertEqual(
            CODRecord.objects.filter(
                settlement=settlement, status=CODStatus.SETTLED
            ).count(),
            BATCH_SIZE,
        )
        self.assertFalse(CODRecord.objects.filter(status=CODStatus.UNSETTLED).exists())
