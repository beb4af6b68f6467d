"""Order service layer (Use Cases).

Owns order creation, the single compare-and-transition entry point used by
every status change, and customer/ops cancellation.

Business rules enforced:
- Pricing snapshot adds up: total = items + shipping - coupon, never negative.
- Fast delivery adds ``FAST_DELIVERY_SURCHARGE`` to shipping.
- Delivery address within ``DELIVERY_RADIUS_KM`` of the shop (when both
  coordinates are known).
- Status transitions validated against the transition table, on a row
  re-read under ``SELECT FOR UPDATE``.
- History recorded and a domain event stored on every transition.
- Cancellation only while ``new`` (``CancellationPolicy``).
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

import structlog
from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from modules.orders.constants import MONEY_QUANTUM, DeliverySpeed, DeliveryStatus
from modules.orders.events import (
    OrderCancelled,
    OrderDelivered,
    OrderFailed,
    OrderPlaced,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    InvalidDeliveryTransition,
    InvalidPricing,
    NotCancelable,
    OrderNotFound,
    OutOfDeliveryRadius,
)
from modules.orders.policies import CancellationPolicy, cancellation_policy
from shared.domain.geo import Coordinate, distance_km

if TYPE_CHECKING:
    from modules.orders.dtos import CancelOrderDTO, CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives the repository and cancellation policy via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        policy: CancellationPolicy = cancellation_policy,
    ) -> None:
        self._order_repo = order_repository
        self._policy = policy

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Persist the checkout hand-off as a ``new`` order.

        Raises:
            InvalidPricing: the discount exceeds items + shipping.
            OutOfDeliveryRadius: the address is outside the service radius.
        """
        log = logger.bind(customer_id=dto.customer_id)

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info("order.idempotency_hit", order_id=existing.pk)
                return existing

        surcharge = (
            Decimal(str(settings.FAST_DELIVERY_SURCHARGE))
            if dto.delivery_speed == DeliverySpeed.FAST
            else Decimal("0.00")
        )
        shipping_price = (dto.shipping_price + surcharge).quantize(MONEY_QUANTUM)
        total_price = (
            dto.items_price + shipping_price - dto.coupon_discount_amount
        ).quantize(MONEY_QUANTUM)
        if total_price < 0:
            raise InvalidPricing("Coupon discount exceeds items and shipping price.")

        self._check_delivery_radius(dto)

        order = self._order_repo.create(
            {
                "customer_id": dto.customer_id,
                "items_price": dto.items_price.quantize(MONEY_QUANTUM),
                "shipping_price": shipping_price,
                "shipping_extra_price": surcharge.quantize(MONEY_QUANTUM),
                "coupon_discount_amount": dto.coupon_discount_amount.quantize(
                    MONEY_QUANTUM
                ),
                "total_price": total_price,
                "payment_method": dto.payment_method,
                "paid_at": timezone.now() if dto.paid else None,
                "delivery_speed": dto.delivery_speed,
                "shop_name": dto.shop_name,
                "shop_latitude": dto.shop_latitude,
                "shop_longitude": dto.shop_longitude,
                "shipping_name": dto.shipping_name,
                "shipping_phone": dto.shipping_phone,
                "shipping_address": dto.shipping_address,
                "shipping_city": dto.shipping_city,
                "shipping_latitude": dto.shipping_latitude,
                "shipping_longitude": dto.shipping_longitude,
                "is_returnable": dto.is_returnable,
                "idempotency_key": dto.idempotency_key,
            }
        )
        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.pk,
                payment_method=order.payment_method,
                total_price=str(order.total_price),
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.pk,
            new_status=DeliveryStatus.NEW,
            actor_id=dto.customer_id,
            notes="Order placed",
        )

        log.info("order.created", order_id=order.pk, total_price=str(total_price))
        return order

    def lock_order(self, order_id: int) -> Order:
        """Re-read an order under a row lock.  Call inside ``transaction.atomic``.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def transition(
        self,
        order: Order,
        new_status: str,
        actor_id: Optional[int] = None,
        notes: str = "",
        reason: str = "",
    ) -> Order:
        """Move a locked order to *new_status*.

        The single place where ``delivery_status`` changes.  Sets the
        timestamps/reason fields that belong to the target state, writes the
        history row and stores the domain events.

        Raises:
            InvalidDeliveryTransition: the transition table forbids it.
        """
        log = logger.bind(
            order_id=order.pk,
            current_status=order.delivery_status,
            new_status=new_status,
        )
        if not order.can_transition_to(new_status):
            log.info("order.invalid_transition")
            raise InvalidDeliveryTransition(
                f"Cannot move order #{order.pk} from {order.delivery_status} "
                f"to {new_status}."
            )

        now = timezone.now()
        old_status = order.delivery_status
        order.delivery_status = new_status
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.pk, old_status=old_status, new_status=new_status
            )
        )

        if new_status == DeliveryStatus.DELIVERED:
            order.delivered_at = now
            order.add_domain_event(
                OrderDelivered(
                    aggregate_id=order.pk,
                    payment_method=order.payment_method,
                    total_price=str(order.total_price),
                )
            )
        elif new_status == DeliveryStatus.FAILED:
            order.failure_reason = reason
            order.add_domain_event(OrderFailed(aggregate_id=order.pk, reason=reason))
        elif new_status == DeliveryStatus.CANCELLED:
            order.cancel_reason = reason
            order.cancelled_at = now
            order.add_domain_event(
                OrderCancelled(aggregate_id=order.pk, reason=reason)
            )

        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.pk,
            new_status=new_status,
            old_status=old_status,
            actor_id=actor_id,
            notes=notes or reason,
        )
        log.info("order.status_updated")
        return order

    @transaction.atomic
    def cancel_order(
        self,
        order_id: int,
        dto: CancelOrderDTO,
        actor_id: int,
        customer_id: Optional[int] = None,
    ) -> Order:
        """Cancel an order on behalf of its customer (or ops when
        *customer_id* is ``None``).

        The order row is locked first so a rider accepting at the same
        moment is serialized with this call: whichever commits second sees
        the other's status.

        Raises:
            OrderNotFound: order does not exist or belongs to someone else.
            NotCancelable: the order has left ``new``.
        """
        order = self.lock_order(order_id)
        if customer_id is not None and order.customer_id != customer_id:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=order.pk, current_status=order.delivery_status)
        if not self._policy.can_cancel(order):
            log.info("order.cancel_rejected")
            raise NotCancelable(
                f"Order #{order.pk} can no longer be cancelled "
                f"(status: {order.delivery_status})."
            )

        reason = self._policy.resolve_reason(dto.reason, dto.note)
        self.transition(
            order,
            DeliveryStatus.CANCELLED,
            actor_id=actor_id,
            reason=reason,
        )
        log.info("order.cancelled", reason=reason)
        return order

    def save(self, order: Order) -> Order:
        """Persist *order* with its pending events (no status change)."""
        return self._order_repo.save(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any, customer_id: Optional[int] = None) -> Order:
        """Retrieve a single order, optionally scoped to its customer.

        Raises:
            OrderNotFound: if the order does not exist or is not the caller's.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or (customer_id is not None and order.customer_id != customer_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_customer_orders(self, customer_id: int) -> models.QuerySet:
        return self._order_repo.for_customer(customer_id)

    def list_orders(self, filters: Optional[dict] = None) -> models.QuerySet:
        return self._order_repo.list(filters)

    def can_cancel(self, order: Order) -> bool:
        return self._policy.can_cancel(order)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_delivery_radius(self, dto: CreateOrderDTO) -> None:
        radius = settings.DELIVERY_RADIUS_KM
        if not radius:
            return
        distance = distance_km(
            Coordinate.from_values(dto.shop_latitude, dto.shop_longitude),
            Coordinate.from_values(dto.shipping_latitude, dto.shipping_longitude),
        )
        if distance is not None and distance > radius:
            logger.info(
                "order.out_of_delivery_radius",
                customer_id=dto.customer_id,
                distance_km=round(distance, 2),
            )
            raise OutOfDeliveryRadius(
                f"Delivery address is {distance:.1f} km from the shop; "
                f"the limit is {radius:g} km."
            )
