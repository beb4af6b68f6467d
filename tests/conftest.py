import itertools
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from modules.deliveries.views import build_delivery_service
from modules.ledger.views import build_ledger_service
from modules.orders.constants import DeliveryStatus
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.returns.views import build_return_service
from modules.riders.models import RiderProfile

User = get_user_model()

_sequence = itertools.count(1)

SHOP = {"shop_latitude": Decimal("17.385000"), "shop_longitude": Decimal("78.486700")}
CUSTOMER = {
    "shipping_latitude": Decimal("17.400000"),
    "shipping_longitude": Decimal("78.500000"),
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Live location samples live in the cache; start every test empty."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    def _make(username=None, **extra):
        return User.objects.create_user(
            username=username or f"user{next(_sequence)}",
            password="testpass123",
            **extra,
        )

    return _make


@pytest.fixture()
def customer(make_user):
    return make_user("asha")


@pytest.fixture()
def other_customer(make_user):
    return make_user("vikram")


@pytest.fixture()
def staff_user(make_user):
    return make_user("ops", is_staff=True)


@pytest.fixture()
def make_rider(make_user):
    def _make(name="Ravi", **extra):
        return RiderProfile.objects.create(user=make_user(), name=name, **extra)

    return _make


@pytest.fixture()
def rider(make_rider):
    return make_rider("Ravi", village="Kothur", phone="9876500001")


@pytest.fixture()
def other_rider(make_rider):
    return make_rider("Suresh", village="Shadnagar", phone="9876500002")


@pytest.fixture()
def client_for():
    """APIClient authenticated as the given user."""

    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return OrderService(order_repository=OrderDjangoRepository())


@pytest.fixture()
def delivery_service():
    return build_delivery_service()


@pytest.fixture()
def ledger_service():
    return build_ledger_service()


@pytest.fixture()
def return_service():
    return build_return_service()


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_order(order_service, customer):
    """Place an order through the service (450.00 COD unless overridden)."""

    def _make(owner=None, **overrides):
        data = {
            "customer_id": (owner or customer).pk,
            "items_price": Decimal("430.00"),
            "shipping_price": Decimal("20.00"),
            "payment_method": "COD",
            "shop_name": "Lakshmi Stores",
            "shipping_name": "Asha",
            "shipping_phone": "9876512345",
            "shipping_address": "2-14 Temple Road",
            "shipping_city": "Kothur",
            **SHOP,
            **CUSTOMER,
        }
        data.update(overrides)
        return order_service.create_order(CreateOrderDTO(**data))

    return _make


@pytest.fixture()
def deliver(delivery_service):
    """Drive an order from ``new`` to ``delivered`` by *rider*."""

    def _deliver(order, rider):
        delivery_service.accept(order.pk, rider)
        delivery_service.depart(order.pk, rider)
        delivered = delivery_service.mark_delivered(order.pk, rider)
        delivered.refresh_from_db()
        return delivered

    return _deliver


@pytest.fixture()
def collect(ledger_service, customer):
    """Book *count* delivered COD orders of *amount* for *rider*."""

    def _collect(rider, count=1, amount=Decimal("450.00")):
        records = []
        for _ in range(count):
            order = Order.objects.create(
                customer=customer,
                items_price=amount,
                total_price=amount,
                payment_method="COD",
                delivery_status=DeliveryStatus.DELIVERED,
                delivered_at=timezone.now(),
            )
            records.append(ledger_service.record_collection(order, rider.pk))
        return records

    return _collect
