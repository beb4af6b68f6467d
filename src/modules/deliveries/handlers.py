"""Event handlers for delivery assignment events."""

from __future__ import annotations

import structlog

from modules.deliveries.events import RiderAssigned, RiderReassigned
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class RiderAssignedHandler(IEventHandler[RiderAssigned]):
    def handle(self, event: RiderAssigned) -> None:
        logger.info(
            "delivery.event.assigned",
            order_id=str(event.aggregate_id),
            rider_id=event.rider_id,
        )


class RiderReassignedHandler(IEventHandler[RiderReassigned]):
    def handle(self, event: RiderReassigned) -> None:
        logger.info(
            "delivery.event.reassigned",
            order_id=str(event.aggregate_id),
            previous_rider_id=event.previous_rider_id,
            rider_id=event.rider_id,
        )


rider_assigned_handler = RiderAssignedHandler()
rider_reassigned_handler = RiderReassignedHandler()
