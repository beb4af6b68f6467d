"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order service needs:
creation from a pricing snapshot, status history tracking and
idempotency-key look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order from a validated pricing/destination snapshot."""

    @abstractmethod
    def add_history(
        self,
        order_id: int,
        new_status: str,
        old_status: Optional[str] = None,
        actor_id: Optional[int] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def for_customer(self, customer_id: int) -> models.QuerySet:
        """Orders placed by one customer, newest first."""
