"""Return eligibility policy."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from django.conf import settings
from django.utils import timezone

from modules.returns.exceptions import NotEligible
from modules.returns.repositories.django_repository import ReturnDjangoRepository

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.returns.repositories.interfaces import IReturnRepository


class ReturnPolicy:
    """An order may be returned when all of these hold:

    * it was delivered and is marked returnable;
    * no open or completed return exists for it (a rejected one does not
      count);
    * ``delivered_at`` is at most ``RETURN_WINDOW_DAYS`` ago.  Orders with no
      recorded delivery time are not limited by the window.
    """

    def __init__(self, return_repository: IReturnRepository) -> None:
        self._return_repo = return_repository

    @property
    def window(self) -> timedelta:
        return timedelta(days=settings.RETURN_WINDOW_DAYS)

    def ineligibility_reason(
        self, order: Order, now: Optional[datetime] = None
    ) -> Optional[str]:
        """Why *order* cannot be returned, or ``None`` when it can."""
        if not order.is_delivered:
            return "Only delivered orders can be returned."
        if not order.is_returnable:
            return "This order is not returnable."
        if order.delivered_at is not None:
            now = now or timezone.now()
            if now - order.delivered_at > self.window:
                return (
                    f"The {settings.RETURN_WINDOW_DAYS}-day return window "
                    "for this order has closed."
                )
        if self._return_repo.blocking_return_exists(order.pk):
            return "A return has already been requested for this order."
        return None

    def is_eligible(self, order: Order, now: Optional[datetime] = None) -> bool:
        return self.ineligibility_reason(order, now) is None

    def check(self, order: Order, now: Optional[datetime] = None) -> None:
        """Raises ``NotEligible`` with the reason when *order* cannot be returned."""
        reason = self.ineligibility_reason(order, now)
        if reason is not None:
            raise NotEligible(reason)


return_policy = ReturnPolicy(ReturnDjangoRepository())
