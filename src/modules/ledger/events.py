"""Domain events for the COD ledger."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class PayoutRequested(DomainEvent):
    """A rider's batch was settled into a pending payout (``aggregate_id`` = settlement)."""

    rider_id: int = 0
    total_amount: str = "0.00"
    cod_count: int = 0


@dataclass(frozen=True)
class SettlementPaid(DomainEvent):
    """Operations recorded the payout as received."""

    rider_id: int = 0
    total_amount: str = "0.00"
    method: str = ""
