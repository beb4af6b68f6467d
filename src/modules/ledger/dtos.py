"""COD ledger DTOs.

- ``RecordSettlementDTO``: admin input when a payout is received.
- ``WalletSummaryDTO`` / ``LedgerTransactionDTO``: the rider wallet screen.
- ``RiderCODSummaryDTO`` / ``CODOverviewDTO``: the admin overview.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.ledger.constants import SettlementMethod


class RecordSettlementDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    reference: str = ""
    note: str = ""

    @field_validator("method")
    @classmethod
    def method_must_be_known(cls, v: str) -> str:
        if v not in SettlementMethod.values:
            raise ValueError("Unknown settlement method.")
        return v


class LedgerTransactionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: int
    amount: Decimal
    status: str
    collected_at: datetime
    settlement_id: Optional[int] = None


class WalletSummaryDTO(BaseModel):
    """What the rider currently holds and how close the next payout is."""

    model_config = ConfigDict(frozen=True)

    rider_id: int
    cash_in_hand: Decimal
    unpaid_orders_count: int
    batch_size: int
    remaining_to_unlock: int
    can_request_payout: bool
    recent_transactions: List[LedgerTransactionDTO]


class RiderCODSummaryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    rider_id: int
    name: str
    village: str
    phone: str
    cod_count: int
    cod_amount: Decimal
    unsettled_count: int
    unsettled_amount: Decimal
    settled_amount: Decimal
    cash_in_hand: Decimal
    last_settlement_at: Optional[datetime] = None


class CODOverviewDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    riders: List[RiderCODSummaryDTO]
    total_cod_amount: Decimal
    total_unsettled_amount: Decimal
    total_cash_in_hand: Decimal
