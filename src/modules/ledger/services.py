"""COD ledger service layer.

Business rules enforced:
- One ``CODRecord`` per delivered COD order, amount = ``order.total_price``
  at delivery time; never one for an Online order.
- ``cash_in_hand`` = sum of the rider's unsettled records.
- A payout settles exactly ``COD_PAYOUT_BATCH_SIZE`` of the rider's oldest
  unsettled records in one transaction, or nothing.
- Ledger contradictions raise ``LedgerIntegrityError`` and are logged at
  error level; they are never corrected automatically.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import structlog
from django.conf import settings
from django.db import models, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from modules.ledger.constants import (
    RECENT_TRANSACTIONS_LIMIT,
    ZERO,
    CODStatus,
    SettlementStatus,
)
from modules.ledger.dtos import (
    CODOverviewDTO,
    LedgerTransactionDTO,
    RiderCODSummaryDTO,
    WalletSummaryDTO,
)
from modules.ledger.events import PayoutRequested, SettlementPaid
from modules.ledger.exceptions import (
    AlreadyFinalized,
    InsufficientBatch,
    LedgerIntegrityError,
    SettlementNotFound,
)
from modules.riders.exceptions import RiderNotFound

if TYPE_CHECKING:
    from modules.ledger.dtos import RecordSettlementDTO
    from modules.ledger.models import CODRecord, Settlement
    from modules.ledger.repositories.interfaces import (
        ICODRecordRepository,
        ISettlementRepository,
    )
    from modules.orders.models import Order
    from modules.riders.repositories.interfaces import IRiderRepository
    from shared.domain.periods import DateWindow

logger = structlog.get_logger(__name__)


class CODLedgerService:
    """Application service for the COD ledger.

    Receives its repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        cod_repository: ICODRecordRepository,
        settlement_repository: ISettlementRepository,
        rider_repository: IRiderRepository,
    ) -> None:
        self._cod_repo = cod_repository
        self._settlement_repo = settlement_repository
        self._rider_repo = rider_repository

    @property
    def batch_size(self) -> int:
        return settings.COD_PAYOUT_BATCH_SIZE

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def record_collection(self, order: Order, rider_id: int) -> CODRecord:
        """Record the cash collected for a delivered COD order.

        Safe to call again for the same order: the existing record is
        returned after checking it still matches the order.  Runs inside the
        caller's transaction, which holds the order row lock.

        Raises:
            LedgerIntegrityError: Online order, or an existing record that
                disagrees with the order amount or rider.
        """
        log = logger.bind(order_id=order.pk, rider_id=rider_id)
        if not order.is_cod:
            log.error("ledger.cod_for_online_order")
            raise LedgerIntegrityError(
                f"Order #{order.pk} is not cash on delivery; no COD record allowed."
            )

        record, created = self._cod_repo.get_or_create_for_order(
            order, rider_id, order.total_price
        )
        if created:
            return record

        if Decimal(record.amount) != Decimal(order.total_price):
            log.error(
                "ledger.cod_amount_mismatch",
                recorded=str(record.amount),
                order_total=str(order.total_price),
            )
            raise LedgerIntegrityError(
                f"COD record for order #{order.pk} is {record.amount}, "
                f"order total is {order.total_price}."
            )
        if record.rider_id != rider_id:
            log.error("ledger.cod_rider_mismatch", recorded_rider_id=record.rider_id)
            raise LedgerIntegrityError(
                f"COD record for order #{order.pk} belongs to another rider."
            )
        log.info("ledger.cod_already_recorded")
        return record

    @transaction.atomic
    def request_payout(self, rider_id: int) -> Settlement:
        """Settle the rider's oldest unsettled records as one batch.

        The rider row is locked first so two payout requests for the same
        rider run one after the other; the second sees the first's flips.

        Raises:
            RiderNotFound: rider does not exist.
            InsufficientBatch: fewer than ``batch_size`` unsettled records.
            LedgerIntegrityError: the batch could not be flipped whole.
        """
        log = logger.bind(rider_id=rider_id)
        if self._rider_repo.get_for_update(rider_id) is None:
            raise RiderNotFound(f"Rider {rider_id} not found.")

        batch = self._cod_repo.oldest_unsettled_for_update(rider_id, self.batch_size)
        if len(batch) < self.batch_size:
            log.info("ledger.payout_insufficient_batch", unsettled=len(batch))
            raise InsufficientBatch(
                f"{self.batch_size} unsettled COD orders are needed for a payout; "
                f"you have {len(batch)}."
            )

        total = sum((Decimal(record.amount) for record in batch), ZERO)
        settlement = self._settlement_repo.create(
            rider_id=rider_id, total_amount=total, cod_count=len(batch)
        )
        flipped = self._cod_repo.mark_settled(
            [record.pk for record in batch], settlement, timezone.now()
        )
        if flipped != len(batch):
            log.error(
                "ledger.partial_batch_flip",
                settlement_id=settlement.pk,
                expected=len(batch),
                flipped=flipped,
            )
            raise LedgerIntegrityError(
                f"Settlement {settlement.pk} flipped {flipped} of {len(batch)} records."
            )

        settlement.add_domain_event(
            PayoutRequested(
                aggregate_id=settlement.pk,
                rider_id=rider_id,
                total_amount=str(total),
                cod_count=len(batch),
            )
        )
        self._settlement_repo.save(settlement)
        log.info(
            "ledger.payout_requested",
            settlement_id=settlement.pk,
            total_amount=str(total),
        )
        return settlement

    @transaction.atomic
    def record_settlement(
        self, settlement_id: int, dto: RecordSettlementDTO, actor_id: int
    ) -> Settlement:
        """Mark a pending settlement paid (admin).

        Raises:
            SettlementNotFound: settlement does not exist.
            AlreadyFinalized: settlement is already paid.
            LedgerIntegrityError: its records no longer add up to it.
        """
        settlement = self._settlement_repo.get_for_update(settlement_id)
        if settlement is None:
            raise SettlementNotFound(f"Settlement {settlement_id} not found.")

        log = logger.bind(settlement_id=settlement.pk, rider_id=settlement.rider_id)
        if settlement.is_paid:
            log.info("ledger.settlement_already_paid")
            raise AlreadyFinalized(f"Settlement {settlement.pk} is already paid.")

        totals = settlement.records.aggregate(
            record_count=Count("id"), record_amount=Sum("amount")
        )
        amount = totals["record_amount"] or ZERO
        if totals["record_count"] != settlement.cod_count or Decimal(amount) != Decimal(
            settlement.total_amount
        ):
            log.error(
                "ledger.settlement_mismatch",
                expected_count=settlement.cod_count,
                actual_count=totals["record_count"],
                expected_amount=str(settlement.total_amount),
                actual_amount=str(amount),
            )
            raise LedgerIntegrityError(
                f"Settlement {settlement.pk} records do not match its totals."
            )

        settlement.status = SettlementStatus.PAID
        settlement.method = dto.method
        settlement.reference = dto.reference
        settlement.note = dto.note
        settlement.processed_at = timezone.now()
        settlement.processed_by_id = actor_id
        settlement.add_domain_event(
            SettlementPaid(
                aggregate_id=settlement.pk,
                rider_id=settlement.rider_id,
                total_amount=str(settlement.total_amount),
                method=dto.method,
            )
        )
        self._settlement_repo.save(settlement)
        log.info("ledger.settlement_recorded", method=dto.method)
        return settlement

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def cash_in_hand(self, rider_id: int) -> Decimal:
        total = self._cod_repo.unsettled_for_rider(rider_id).aggregate(
            total=Sum("amount")
        )["total"]
        return total or ZERO

    def wallet_summary(self, rider_id: int) -> WalletSummaryDTO:
        unsettled = self._cod_repo.unsettled_for_rider(rider_id).aggregate(
            count=Count("id"), total=Sum("amount")
        )
        count = unsettled["count"]
        recent = self._cod_repo.for_rider(rider_id)[:RECENT_TRANSACTIONS_LIMIT]
        return WalletSummaryDTO(
            rider_id=rider_id,
            cash_in_hand=unsettled["total"] or ZERO,
            unpaid_orders_count=count,
            batch_size=self.batch_size,
            remaining_to_unlock=max(self.batch_size - count, 0),
            can_request_payout=count >= self.batch_size,
            recent_transactions=[_transaction(record) for record in recent],
        )

    def payout_history(self, rider_id: int) -> models.QuerySet:
        return self._settlement_repo.for_rider(rider_id)

    def collected_on(self, rider_id: int, window: DateWindow) -> Decimal:
        total = (
            self._cod_repo.for_rider(rider_id)
            .filter(**window.lookups("created_at"))
            .aggregate(total=Sum("amount"))["total"]
        )
        return total or ZERO

    def cod_history(
        self, rider_id: int, window: DateWindow, status: Optional[str] = None
    ) -> models.QuerySet:
        """A rider's COD records inside *window* (admin), newest first."""
        if self._rider_repo.get_by_id(rider_id) is None:
            raise RiderNotFound(f"Rider {rider_id} not found.")
        queryset = self._cod_repo.for_rider(rider_id).filter(
            **window.lookups("created_at")
        )
        if status in CODStatus.values:
            queryset = queryset.filter(status=status)
        return queryset

    def summarize(self, records: models.QuerySet) -> dict:
        # Aliases must not shadow the "amount" field.
        open_records = models.Q(status=CODStatus.UNSETTLED)
        totals = records.aggregate(
            total_count=Count("id"),
            total_amount=Sum("amount"),
            open_count=Count("id", filter=open_records),
            open_amount=Sum("amount", filter=open_records),
        )
        return {
            "count": totals["total_count"],
            "amount": totals["total_amount"] or ZERO,
            "unsettled_count": totals["open_count"],
            "unsettled_amount": totals["open_amount"] or ZERO,
        }

    def rider_settlements(self, rider_id: int) -> models.QuerySet:
        if self._rider_repo.get_by_id(rider_id) is None:
            raise RiderNotFound(f"Rider {rider_id} not found.")
        return self._settlement_repo.for_rider(rider_id)

    def overview(self, window: DateWindow, query: str = "") -> CODOverviewDTO:
        """Per-rider COD totals for the admin dashboard."""
        riders = self._cod_repo.rider_totals(
            self._rider_repo.search(query), window
        ).order_by("name", "id")
        rows = [
            RiderCODSummaryDTO(
                rider_id=rider.pk,
                name=rider.name,
                village=rider.village,
                phone=rider.phone,
                cod_count=rider.cod_count,
                cod_amount=rider.cod_amount,
                unsettled_count=rider.unsettled_count,
                unsettled_amount=rider.unsettled_amount,
                settled_amount=rider.settled_amount,
                cash_in_hand=rider.cash_in_hand,
                last_settlement_at=rider.last_settlement_at,
            )
            for rider in riders
        ]
        return CODOverviewDTO(
            riders=rows,
            total_cod_amount=sum((row.cod_amount for row in rows), ZERO),
            total_unsettled_amount=sum((row.unsettled_amount for row in rows), ZERO),
            total_cash_in_hand=sum((row.cash_in_hand for row in rows), ZERO),
        )


def _transaction(record: CODRecord) -> LedgerTransactionDTO:
    return LedgerTransactionDTO(
        order_id=record.order_id,
        amount=record.amount,
        status=record.status,
        collected_at=record.created_at,
        settlement_id=record.settlement_id,
    )
