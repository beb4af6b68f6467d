"""Order and OrderStatusHistory models.

Business rules implemented:
- Pricing snapshot: ``total_price == items_price + shipping_price -
  coupon_discount_amount`` where ``shipping_price`` already includes the
  fast-delivery surcharge (``shipping_extra_price``).
- ``is_paid`` is derived (Online ``paid_at`` or COD + delivered), never stored.
- Cancellation fields are set only on entering ``cancelled``.
- Each status change generates a history record.
- Idempotency via ``idempotency_key`` unique constraint.
- Customer FK uses PROTECT: orders are never physically deleted.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    TERMINAL_STATES,
    DeliverySpeed,
    DeliveryStatus,
    PaymentMethod,
    can_transition,
)
from shared.domain.events import DomainEventMixin
from shared.domain.geo import Coordinate

MONEY = {"max_digits": 10, "decimal_places": 2}
COORDINATE = {"max_digits": 9, "decimal_places": 6, "null": True, "blank": True}


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    The numeric ``id`` is the order number shown to customers and riders.
    ``idempotency_key`` is nullable: only checkouts that send an
    ``Idempotency-Key`` header carry one.
    """

    customer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    # Pricing snapshot
    items_price: models.DecimalField = models.DecimalField(**MONEY)
    shipping_price: models.DecimalField = models.DecimalField(
        **MONEY, default=Decimal("0.00")
    )
    shipping_extra_price: models.DecimalField = models.DecimalField(
        **MONEY, default=Decimal("0.00")
    )
    coupon_discount_amount: models.DecimalField = models.DecimalField(
        **MONEY, default=Decimal("0.00")
    )
    total_price: models.DecimalField = models.DecimalField(**MONEY)

    # Payment
    payment_method: models.CharField = models.CharField(
        max_length=10, choices=PaymentMethod.choices
    )
    paid_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    # Delivery
    delivery_status: models.CharField = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.NEW,
    )
    delivery_speed: models.CharField = models.CharField(
        max_length=10,
        choices=DeliverySpeed.choices,
        default=DeliverySpeed.NORMAL,
    )
    delivered_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    failure_reason: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )

    # Cancellation
    cancel_reason: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    cancelled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    # Destination and pickup snapshot
    shop_name: models.CharField = models.CharField(max_length=150, blank=True, default="")
    shop_latitude: models.DecimalField = models.DecimalField(**COORDINATE)
    shop_longitude: models.DecimalField = models.DecimalField(**COORDINATE)
    shipping_name: models.CharField = models.CharField(max_length=150, blank=True, default="")
    shipping_phone: models.CharField = models.CharField(max_length=20, blank=True, default="")
    shipping_address: models.CharField = models.CharField(max_length=255, blank=True, default="")
    shipping_city: models.CharField = models.CharField(max_length=120, blank=True, default="")
    shipping_latitude: models.DecimalField = models.DecimalField(**COORDINATE)
    shipping_longitude: models.DecimalField = models.DecimalField(**COORDINATE)

    is_returnable: models.BooleanField = models.BooleanField(default=True)
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["delivery_status"], name="orders_status_idx"),
            models.Index(fields=["customer", "-created_at"], name="orders_customer_idx"),
            models.Index(fields=["delivered_at"], name="orders_delivered_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_price__gte=0),
                name="orders_total_price_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(shipping_extra_price__lte=models.F("shipping_price")),
                name="orders_surcharge_within_shipping",
            ),
        ]

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_paid(self) -> bool:
        """Online orders are paid once ``paid_at`` is set; COD once delivered."""
        if self.paid_at is not None:
            return True
        return (
            self.payment_method == PaymentMethod.COD
            and self.delivery_status == DeliveryStatus.DELIVERED
        )

    @property
    def is_delivered(self) -> bool:
        return self.delivery_status == DeliveryStatus.DELIVERED

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.delivery_status in TERMINAL_STATES

    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD

    @property
    def is_fast(self) -> bool:
        return self.delivery_speed == DeliverySpeed.FAST

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        return can_transition(self.delivery_status, new_status)

    @property
    def shop_coordinate(self) -> Optional[Coordinate]:
        return Coordinate.from_values(self.shop_latitude, self.shop_longitude)

    @property
    def customer_coordinate(self) -> Optional[Coordinate]:
        return Coordinate.from_values(self.shipping_latitude, self.shipping_longitude)

    # ------------------------------------------------------------------
    # Pricing invariant
    # ------------------------------------------------------------------

    def expected_total(self) -> Decimal:
        return (
            Decimal(self.items_price)
            + Decimal(self.shipping_price)
            - Decimal(self.coupon_discount_amount)
        )

    def pricing_is_consistent(self) -> bool:
        return Decimal(self.total_price) == self.expected_total()

    def clean(self) -> None:
        super().clean()
        if not self.pricing_is_consistent():
            raise ValidationError(
                {"total_price": "Total must equal items + shipping - coupon discount."}
            )
        if self.total_price is not None and Decimal(self.total_price) < 0:
            raise ValidationError({"total_price": "Total cannot be negative."})

    def __str__(self) -> str:
        return f"#{self.pk} ({self.delivery_status})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``actor`` is nullable: ``None`` means the change was not attributed to a
    user (e.g. imported data).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=DeliveryStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
    )
    actor: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
