"""Return request repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.returns.models import ReturnRequest


class IReturnRepository(IRepository["ReturnRequest"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> ReturnRequest:
        """Persist a new ``pending`` return."""

    @abstractmethod
    def blocking_return_exists(self, order_id: int) -> bool:
        """An open or completed return exists for the order."""

    @abstractmethod
    def for_customer(self, customer_id: int) -> models.QuerySet:
        """Returns requested by a customer, newest first."""

    @abstractmethod
    def pickups_for_rider(self, rider_id: int) -> models.QuerySet:
        """Open returns the rider handles or may pick up."""

    @abstractmethod
    def is_offered_to(self, return_id: int, rider_id: int) -> bool:
        """Whether the return is among the rider's pickups."""

    @abstractmethod
    def completed_for_rider(self, rider_id: int) -> models.QuerySet:
        """Returns the rider has brought back to the shop, newest first."""

    @abstractmethod
    def latest_for_order(self, order_id: int) -> Optional[ReturnRequest]:
        """Most recent return of the order, any status."""
