"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when an order is created at checkout."""

    payment_method: str = ""
    total_price: str = "0.00"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every delivery status transition."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order enters ``cancelled``."""

    reason: str = ""


@dataclass(frozen=True)
class OrderDelivered(DomainEvent):
    """Raised when an order enters ``delivered``."""

    payment_method: str = ""
    total_price: str = "0.00"


@dataclass(frozen=True)
class OrderFailed(DomainEvent):
    """Raised when an order enters ``failed``."""

    reason: str = ""
