"""Delivery assignment models.

- ``DeliveryAssignment``: the link between one order and one rider.  At most
  one active link per order, enforced by a partial unique constraint.
  Reassignment closes the active link and opens a new one.
- ``DeliveryRejection``: a rider declining a ``new`` order offer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel
from modules.deliveries.constants import AssignmentEndReason, RejectionReason
from shared.domain.geo import Coordinate

COORDINATE = {"max_digits": 9, "decimal_places": 6, "null": True, "blank": True}


class DeliveryAssignment(BaseModel):
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="assignments",
    )
    rider: models.ForeignKey = models.ForeignKey(
        "riders.RiderProfile",
        on_delete=models.PROTECT,
        related_name="assignments",
    )
    assigned_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    is_active: models.BooleanField = models.BooleanField(default=True)

    # Copied from the order when the assignment is made.
    shop_latitude: models.DecimalField = models.DecimalField(**COORDINATE)
    shop_longitude: models.DecimalField = models.DecimalField(**COORDINATE)
    customer_latitude: models.DecimalField = models.DecimalField(**COORDINATE)
    customer_longitude: models.DecimalField = models.DecimalField(**COORDINATE)

    # Last known rider position.
    last_latitude: models.DecimalField = models.DecimalField(**COORDINATE)
    last_longitude: models.DecimalField = models.DecimalField(**COORDINATE)
    location_updated_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )
    promised_eta_minutes: models.PositiveSmallIntegerField = (
        models.PositiveSmallIntegerField(null=True, blank=True)
    )

    ended_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    end_reason: models.CharField = models.CharField(
        max_length=20, choices=AssignmentEndReason.choices, blank=True, default=""
    )

    class Meta:
        db_table = "delivery_assignments"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(is_active=True),
                name="one_active_assignment_per_order",
            ),
        ]
        indexes = [
            models.Index(fields=["rider", "is_active"], name="assignment_rider_active_idx"),
            models.Index(fields=["rider", "end_reason"], name="assignment_rider_end_idx"),
        ]

    @property
    def shop_coordinate(self) -> Optional[Coordinate]:
        return Coordinate.from_values(self.shop_latitude, self.shop_longitude)

    @property
    def customer_coordinate(self) -> Optional[Coordinate]:
        return Coordinate.from_values(self.customer_latitude, self.customer_longitude)

    @property
    def last_coordinate(self) -> Optional[Coordinate]:
        return Coordinate.from_values(self.last_latitude, self.last_longitude)

    def close(self, reason: str, now: datetime) -> None:
        self.is_active = False
        self.end_reason = reason
        self.ended_at = now
        self.save(update_fields=["is_active", "end_reason", "ended_at"])

    def __str__(self) -> str:
        state = "active" if self.is_active else self.end_reason or "closed"
        return f"#{self.order_id} -> rider {self.rider_id} ({state})"


class DeliveryRejection(BaseModel):
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="rejections",
    )
    rider: models.ForeignKey = models.ForeignKey(
        "riders.RiderProfile",
        on_delete=models.CASCADE,
        related_name="rejections",
    )
    reason: models.CharField = models.CharField(
        max_length=20, choices=RejectionReason.choices
    )

    class Meta:
        db_table = "delivery_rejections"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "rider"], name="one_rejection_per_rider_order"
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.order_id} rejected by rider {self.rider_id} ({self.reason})"
