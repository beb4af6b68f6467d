"""COD ledger repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.ledger.models import CODRecord, Settlement
    from modules.orders.models import Order
    from shared.domain.periods import DateWindow


class ICODRecordRepository(IRepository["CODRecord"]):
    @abstractmethod
    def get_for_order(self, order_id: int) -> Optional[CODRecord]:
        """The order's COD record, if one exists."""

    @abstractmethod
    def get_or_create_for_order(
        self, order: Order, rider_id: int, amount: Decimal
    ) -> Tuple[CODRecord, bool]:
        """Create the order's record once; return ``(record, created)``."""

    @abstractmethod
    def unsettled_for_rider(self, rider_id: int) -> models.QuerySet:
        """Unsettled records of a rider, oldest first."""

    @abstractmethod
    def oldest_unsettled_for_update(self, rider_id: int, limit: int) -> List[CODRecord]:
        """Lock and return the rider's *limit* oldest unsettled records."""

    @abstractmethod
    def mark_settled(
        self, record_ids: Iterable[int], settlement: Settlement, now: datetime
    ) -> int:
        """Flip unsettled records into *settlement*; return rows changed."""

    @abstractmethod
    def for_rider(self, rider_id: int) -> models.QuerySet:
        """All records of a rider, newest first."""

    @abstractmethod
    def rider_totals(
        self, riders: models.QuerySet, window: DateWindow
    ) -> models.QuerySet:
        """Annotate *riders* with their COD totals inside *window*."""


class ISettlementRepository(IRepository["Settlement"]):
    @abstractmethod
    def create(self, rider_id: int, total_amount: Decimal, cod_count: int) -> Settlement:
        """Open a pending settlement."""

    @abstractmethod
    def for_rider(self, rider_id: int) -> models.QuerySet:
        """Settlements of a rider, newest first."""
