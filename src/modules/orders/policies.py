"""Cancellation policy for customer and operations initiated cancels."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from modules.orders.constants import (
    DEFAULT_OTHER_CANCEL_REASON,
    CancelReason,
    DeliveryStatus,
)

if TYPE_CHECKING:
    from modules.orders.models import Order


class CancellationPolicy:
    """Cancellation is allowed only before a rider accepts the order.

    Deliberately strict: once a rider has accepted, the order can only end as
    delivered or failed.
    """

    cancelable_states = frozenset({DeliveryStatus.NEW})

    def can_cancel(self, order: Order) -> bool:
        return order.delivery_status in self.cancelable_states

    @staticmethod
    def resolve_reason(reason: str, note: Optional[str] = None) -> str:
        """Text stored in ``cancel_reason``.

        Fixed reasons are stored verbatim.  "Other" stores the customer's own
        text, or ``"Cancelled by user"`` when none was given.

        Raises:
            ValueError: *reason* is not one of ``CancelReason``.
        """
        if reason not in CancelReason.values:
            raise ValueError(f"Unknown cancel reason: {reason!r}")
        if reason == CancelReason.OTHER:
            return (note or "").strip() or DEFAULT_OTHER_CANCEL_REASON
        return reason


cancellation_policy = CancellationPolicy()
