"""Event handlers for return events."""

from __future__ import annotations

import structlog

from modules.returns.events import ReturnRefunded, ReturnRequested, ReturnStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class ReturnRequestedHandler(IEventHandler[ReturnRequested]):
    def handle(self, event: ReturnRequested) -> None:
        logger.info(
            "returns.event.requested",
            return_id=str(event.aggregate_id),
            order_id=event.order_id,
        )


class ReturnStatusChangedHandler(IEventHandler[ReturnStatusChanged]):
    def handle(self, event: ReturnStatusChanged) -> None:
        logger.info(
            "returns.event.status_changed",
            return_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class ReturnRefundedHandler(IEventHandler[ReturnRefunded]):
    def handle(self, event: ReturnRefunded) -> None:
        logger.info(
            "returns.event.refunded",
            return_id=str(event.aggregate_id),
            order_id=event.order_id,
            refund_amount=event.refund_amount,
        )


return_requested_handler = ReturnRequestedHandler()
return_status_changed_handler = ReturnStatusChangedHandler()
return_refunded_handler = ReturnRefundedHandler()
