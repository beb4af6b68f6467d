"""Event handlers for COD ledger events."""

from __future__ import annotations

import structlog

from modules.ledger.events import PayoutRequested, SettlementPaid
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class PayoutRequestedHandler(IEventHandler[PayoutRequested]):
    def handle(self, event: PayoutRequested) -> None:
        logger.info(
            "ledger.event.payout_requested",
            settlement_id=str(event.aggregate_id),
            rider_id=event.rider_id,
            total_amount=event.total_amount,
            cod_count=event.cod_count,
        )


class SettlementPaidHandler(IEventHandler[SettlementPaid]):
    def handle(self, event: SettlementPaid) -> None:
        logger.info(
            "ledger.event.settlement_paid",
            settlement_id=str(event.aggregate_id),
            rider_id=event.rider_id,
            total_amount=event.total_amount,
        )


payout_requested_handler = PayoutRequestedHandler()
settlement_paid_handler = SettlementPaidHandler()
