"""Django ORM implementations of the COD ledger repositories.

Both the one-record-per-order rule and the batch flip are enforced by the
database: ``unique(order)`` on ``CODRecord`` and a conditional ``UPDATE``
that only touches rows still ``unsettled``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from django.db import IntegrityError, models, transaction
from django.db.models import Count, OuterRef, Q, Subquery, Sum
from django.db.models.functions import Coalesce

from modules.core.outbox import store_domain_events
from modules.ledger.constants import ZERO, CODStatus
from modules.ledger.models import CODRecord, Settlement
from modules.ledger.repositories.interfaces import (
    ICODRecordRepository,
    ISettlementRepository,
)
from modules.orders.models import Order
from shared.domain.periods import DateWindow

logger = structlog.get_logger(__name__)


class CODRecordDjangoRepository(ICODRecordRepository):
    def get_by_id(self, id: int) -> Optional[CODRecord]:
        return CODRecord.objects.select_related("order", "rider").filter(pk=id).first()

    def get_for_update(self, id: int) -> Optional[CODRecord]:
        return CODRecord.objects.select_for_update().filter(pk=id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = CODRecord.objects.select_related("order", "rider")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: CODRecord) -> CODRecord:
        entity.save()
        return entity

    def get_for_order(self, order_id: int) -> Optional[CODRecord]:
        return CODRecord.objects.filter(order_id=order_id).first()

    def get_or_create_for_order(
        self, order: Order, rider_id: int, amount: Decimal
    ) -> Tuple[CODRecord, bool]:
        try:
            # Savepoint: a racing insert must not poison the outer transaction.
            with transaction.atomic():
                record, created = CODRecord.objects.get_or_create(
                    order=order,
                    defaults={"rider_id": rider_id, "amount": amount},
                )
        except IntegrityError:
            record, created = CODRecord.objects.get(order=order), False
        if created:
            logger.info(
                "ledger.cod_recorded",
                order_id=order.pk,
                rider_id=rider_id,
                amount=str(amount),
            )
        return record, created

    def unsettled_for_rider(self, rider_id: int) -> models.QuerySet:
        return CODRecord.objects.filter(
            rider_id=rider_id, status=CODStatus.UNSETTLED
        ).order_by("created_at", "id")

    def oldest_unsettled_for_update(self, rider_id: int, limit: int) -> List[CODRecord]:
        return list(self.unsettled_for_rider(rider_id).select_for_update()[:limit])

    def mark_settled(
        self, record_ids: Iterable[int], settlement: Settlement, now: datetime
    ) -> int:
        return CODRecord.objects.filter(
            pk__in=list(record_ids), status=CODStatus.UNSETTLED
        ).update(
            status=CODStatus.SETTLED,
            settlement=settlement,
            settled_at=now,
            updated_at=now,
        )

    def for_rider(self, rider_id: int) -> models.QuerySet:
        return (
            CODRecord.objects.select_related("order", "settlement")
            .filter(rider_id=rider_id)
            .order_by("-created_at", "-id")
        )

    def rider_totals(
        self, riders: models.QuerySet, window: DateWindow
    ) -> models.QuerySet:
        in_window = Q(
            cod_records__isnull=False, **window.lookups("cod_records__created_at")
        )
        unsettled = Q(cod_records__status=CODStatus.UNSETTLED)
        settled = Q(cod_records__status=CODStatus.SETTLED)
        last_settlement = Settlement.objects.filter(rider=OuterRef("pk")).order_by(
            "-created_at", "-id"
        )
        return riders.annotate(
            cod_count=Count("cod_records", filter=in_window),
            cod_amount=Coalesce(Sum("cod_records__amount", filter=in_window), ZERO),
            unsettled_count=Count("cod_records", filter=in_window & unsettled),
            unsettled_amount=Coalesce(
                Sum("cod_records__amount", filter=in_window & unsettled), ZERO
            ),
            settled_amount=Coalesce(
                Sum("cod_records__amount", filter=in_window & settled), ZERO
            ),
            cash_in_hand=Coalesce(Sum("cod_records__amount", filter=unsettled), ZERO),
            last_settlement_at=Subquery(last_settlement.values("created_at")[:1]),
        )


class SettlementDjangoRepository(ISettlementRepository):
    def get_by_id(self, id: int) -> Optional[Settlement]:
        try:
            return Settlement.objects.select_related("rider").filter(pk=id).first()
        except (TypeError, ValueError):
            return None

    def get_for_update(self, id: int) -> Optional[Settlement]:
        try:
            return Settlement.objects.select_for_update().filter(pk=id).first()
        except (TypeError, ValueError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = Settlement.objects.select_related("rider")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Settlement) -> Settlement:
        """Persist a settlement and its pending domain events together."""
        entity.save()
        event_count = store_domain_events(entity, topic="ledger")
        logger.info(
            "ledger.settlement_saved", settlement_id=entity.pk, event_count=event_count
        )
        return entity

    def create(self, rider_id: int, total_amount: Decimal, cod_count: int) -> Settlement:
        return Settlement.objects.create(
            rider_id=rider_id, total_amount=total_amount, cod_count=cod_count
        )

    def for_rider(self, rider_id: int) -> models.QuerySet:
        return Settlement.objects.filter(rider_id=rider_id).order_by("-created_at", "-id")
