"""Domain events for delivery assignments."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class RiderAssigned(DomainEvent):
    """A rider claimed a new order.  ``aggregate_id`` is the order id."""

    rider_id: int = 0


@dataclass(frozen=True)
class RiderReassigned(DomainEvent):
    """Operations replaced the rider of an order."""

    previous_rider_id: int = 0
    rider_id: int = 0
