"""Django ORM implementation of the delivery assignment repository."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.db import models

from modules.deliveries.models import DeliveryAssignment, DeliveryRejection
from modules.deliveries.repositories.interfaces import IAssignmentRepository
from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class AssignmentDjangoRepository(IAssignmentRepository):
    def get_by_id(self, id: int) -> Optional[DeliveryAssignment]:
        return (
            DeliveryAssignment.objects.select_related("order", "rider")
            .filter(pk=id)
            .first()
        )

    def get_for_update(self, id: int) -> Optional[DeliveryAssignment]:
        return DeliveryAssignment.objects.select_for_update().filter(pk=id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = DeliveryAssignment.objects.select_related("order", "rider")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: DeliveryAssignment) -> DeliveryAssignment:
        entity.save()
        return entity

    # ------------------------------------------------------------------
    # Assignment lifecycle
    # ------------------------------------------------------------------

    def create(
        self, order: Order, rider_id: int, assigned_by_id: Optional[int] = None
    ) -> DeliveryAssignment:
        assignment = DeliveryAssignment.objects.create(
            order=order,
            rider_id=rider_id,
            assigned_by_id=assigned_by_id,
            shop_latitude=order.shop_latitude,
            shop_longitude=order.shop_longitude,
            customer_latitude=order.shipping_latitude,
            customer_longitude=order.shipping_longitude,
        )
        logger.info(
            "delivery.assignment_opened",
            order_id=order.pk,
            rider_id=rider_id,
            assignment_id=assignment.pk,
        )
        return assignment

    def active_for_order(self, order_id: int) -> Optional[DeliveryAssignment]:
        return (
            DeliveryAssignment.objects.select_related("rider")
            .filter(order_id=order_id, is_active=True)
            .first()
        )

    def active_for_rider(self, rider_id: int) -> models.QuerySet:
        return DeliveryAssignment.objects.filter(rider_id=rider_id, is_active=True)

    def ended_for_order(
        self, order_id: int, reason: str
    ) -> Optional[DeliveryAssignment]:
        return (
            DeliveryAssignment.objects.filter(order_id=order_id, end_reason=reason)
            .order_by("-ended_at", "-id")
            .first()
        )

    def close_active(
        self, order_id: int, reason: str, now: datetime
    ) -> List[DeliveryAssignment]:
        closed = list(
            DeliveryAssignment.objects.select_for_update().filter(
                order_id=order_id, is_active=True
            )
        )
        for assignment in closed:
            assignment.close(reason, now)
            logger.info(
                "delivery.assignment_closed",
                order_id=order_id,
                rider_id=assignment.rider_id,
                end_reason=reason,
            )
        return closed

    def update_location(
        self,
        assignment: DeliveryAssignment,
        latitude: Decimal,
        longitude: Decimal,
        now: datetime,
    ) -> None:
        # Conditional update: a sample racing with delivery must not touch a
        # closed assignment.
        DeliveryAssignment.objects.filter(pk=assignment.pk, is_active=True).update(
            last_latitude=latitude,
            last_longitude=longitude,
            location_updated_at=now,
            updated_at=now,
        )

    def ended_for_rider(
        self, rider_id: int, reasons: Iterable[str], day: Optional[date] = None
    ) -> models.QuerySet:
        queryset = DeliveryAssignment.objects.select_related("order").filter(
            rider_id=rider_id, is_active=False, end_reason__in=list(reasons)
        )
        if day is not None:
            queryset = queryset.filter(ended_at__date=day)
        return queryset.order_by("-ended_at", "-id")

    # ------------------------------------------------------------------
    # Rejections
    # ------------------------------------------------------------------

    def record_rejection(
        self, order_id: int, rider_id: int, reason: str
    ) -> DeliveryRejection:
        rejection, created = DeliveryRejection.objects.get_or_create(
            order_id=order_id, rider_id=rider_id, defaults={"reason": reason}
        )
        if created:
            logger.info(
                "delivery.offer_rejected",
                order_id=order_id,
                rider_id=rider_id,
                reason=reason,
            )
        return rejection

    def rejected_order_ids(self, rider_id: int) -> models.QuerySet:
        return DeliveryRejection.objects.filter(rider_id=rider_id).values("order_id")

    def rejections_on(self, rider_id: int, day: date) -> int:
        return DeliveryRejection.objects.filter(
            rider_id=rider_id, created_at__date=day
        ).count()
