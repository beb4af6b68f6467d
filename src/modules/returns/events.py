"""Domain events for returns."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class ReturnRequested(DomainEvent):
    order_id: int = 0


@dataclass(frozen=True)
class ReturnStatusChanged(DomainEvent):
    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class ReturnRefunded(DomainEvent):
    order_id: int = 0
    refund_amount: str = "0.00"
    refund_mode: str = ""
