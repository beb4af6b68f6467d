"""Django ORM implementation of the return request repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.db import models, transaction
from django.db.models import Q

from modules.core.outbox import store_domain_events
from modules.deliveries.constants import AssignmentEndReason
from modules.returns.constants import OPEN_RETURN_STATES, ReturnStatus
from modules.returns.models import ReturnRequest
from modules.returns.repositories.interfaces import IReturnRepository

logger = structlog.get_logger(__name__)


class ReturnDjangoRepository(IReturnRepository):
    def get_by_id(self, id: int) -> Optional[ReturnRequest]:
        try:
            return (
                ReturnRequest.objects.select_related("order", "rider")
                .filter(pk=id)
                .first()
            )
        except (TypeError, ValueError):
            return None

    def get_for_update(self, id: int) -> Optional[ReturnRequest]:
        try:
            return ReturnRequest.objects.select_for_update().filter(pk=id).first()
        except (TypeError, ValueError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = ReturnRequest.objects.select_related("order", "rider", "customer")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: ReturnRequest) -> ReturnRequest:
        """Persist a return and its pending domain events together."""
        entity.save()
        event_count = store_domain_events(entity, topic="returns")
        logger.info("returns.saved", return_id=entity.pk, event_count=event_count)
        return entity

    def create(self, data: Dict[str, Any]) -> ReturnRequest:
        return ReturnRequest.objects.create(**data)

    def blocking_return_exists(self, order_id: int) -> bool:
        return ReturnRequest.objects.filter(
            order_id=order_id,
            status__in=[*OPEN_RETURN_STATES, ReturnStatus.COMPLETED],
        ).exists()

    def for_customer(self, customer_id: int) -> models.QuerySet:
        return self.list({"customer_id": customer_id})

    def pickups_for_rider(self, rider_id: int) -> models.QuerySet:
        # Unclaimed returns are offered to the rider who delivered the order.
        delivered_by_rider = Q(
            status=ReturnStatus.PENDING,
            rider__isnull=True,
            order__assignments__rider_id=rider_id,
            order__assignments__end_reason=AssignmentEndReason.DELIVERED,
        )
        mine = Q(rider_id=rider_id, status__in=list(OPEN_RETURN_STATES))
        return self.list().filter(mine | delivered_by_rider).distinct().order_by(
            "created_at", "id"
        )

    def is_offered_to(self, return_id: int, rider_id: int) -> bool:
        return self.pickups_for_rider(rider_id).filter(pk=return_id).exists()

    def completed_for_rider(self, rider_id: int) -> models.QuerySet:
        return self.list(
            {
                "rider_id": rider_id,
                "status__in": [ReturnStatus.COMPLETED, ReturnStatus.DELIVERED_TO_SHOP],
            }
        ).order_by("-updated_at", "-id")

    def latest_for_order(self, order_id: int) -> Optional[ReturnRequest]:
        return ReturnRequest.objects.filter(order_id=order_id).first()
