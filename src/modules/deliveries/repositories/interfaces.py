"""Delivery assignment repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.deliveries.models import DeliveryAssignment, DeliveryRejection
    from modules.orders.models import Order


class IAssignmentRepository(IRepository["DeliveryAssignment"]):
    @abstractmethod
    def create(
        self, order: Order, rider_id: int, assigned_by_id: Optional[int] = None
    ) -> DeliveryAssignment:
        """Open an active assignment, copying the order's coordinates."""

    @abstractmethod
    def active_for_order(self, order_id: int) -> Optional[DeliveryAssignment]:
        """The order's active assignment, if any."""

    @abstractmethod
    def active_for_rider(self, rider_id: int) -> models.QuerySet:
        """Active assignments held by a rider."""

    @abstractmethod
    def ended_for_order(
        self, order_id: int, reason: str
    ) -> Optional[DeliveryAssignment]:
        """The most recent assignment of the order closed with *reason*."""

    @abstractmethod
    def close_active(
        self, order_id: int, reason: str, now: datetime
    ) -> List[DeliveryAssignment]:
        """Close every active assignment of the order."""

    @abstractmethod
    def update_location(
        self,
        assignment: DeliveryAssignment,
        latitude: Decimal,
        longitude: Decimal,
        now: datetime,
    ) -> None:
        """Store the rider's last known coordinate on the assignment."""

    @abstractmethod
    def ended_for_rider(
        self, rider_id: int, reasons: Iterable[str], day: Optional[date] = None
    ) -> models.QuerySet:
        """Closed assignments of a rider, optionally limited to one day."""

    @abstractmethod
    def record_rejection(
        self, order_id: int, rider_id: int, reason: str
    ) -> DeliveryRejection:
        """Store a rider declining an offer (idempotent per order and rider)."""

    @abstractmethod
    def rejected_order_ids(self, rider_id: int) -> models.QuerySet:
        """Ids of orders the rider declined."""

    @abstractmethod
    def rejections_on(self, rider_id: int, day: date) -> int:
        """Number of offers the rider declined on *day*."""
