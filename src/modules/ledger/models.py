"""COD ledger models.

Business rules implemented:
- Exactly one ``CODRecord`` per COD order (one-to-one on ``order``); the
  amount is a snapshot of ``order.total_price`` taken at delivery.
- A record is ``settled`` exactly when it belongs to a ``Settlement``.
- A ``Settlement`` groups a fixed-size batch of one rider's oldest records.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel
from modules.ledger.constants import CODStatus, SettlementMethod, SettlementStatus
from shared.domain.events import DomainEventMixin

MONEY = {"max_digits": 12, "decimal_places": 2}


class Settlement(DomainEventMixin, BaseModel):
    """A payout batch: the rider hands ``total_amount`` to the platform."""

    rider: models.ForeignKey = models.ForeignKey(
        "riders.RiderProfile",
        on_delete=models.PROTECT,
        related_name="settlements",
    )
    total_amount: models.DecimalField = models.DecimalField(**MONEY)
    cod_count: models.PositiveIntegerField = models.PositiveIntegerField()
    status: models.CharField = models.CharField(
        max_length=20,
        choices=SettlementStatus.choices,
        default=SettlementStatus.PENDING,
    )
    method: models.CharField = models.CharField(
        max_length=20, choices=SettlementMethod.choices, blank=True, default=""
    )
    reference: models.CharField = models.CharField(max_length=120, blank=True, default="")
    note: models.TextField = models.TextField(blank=True, default="")
    processed_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    processed_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "cod_settlements"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["rider", "-created_at"], name="settlement_rider_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name="settlement_total_non_negative",
            ),
        ]

    @property
    def is_paid(self) -> bool:
        return self.status == SettlementStatus.PAID

    def __str__(self) -> str:
        return f"Settlement {self.pk} rider {self.rider_id} {self.total_amount} ({self.status})"


class CODRecord(BaseModel):
    """Cash a rider collected for one delivered COD order."""

    order: models.OneToOneField = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="cod_record",
    )
    rider: models.ForeignKey = models.ForeignKey(
        "riders.RiderProfile",
        on_delete=models.PROTECT,
        related_name="cod_records",
    )
    amount: models.DecimalField = models.DecimalField(**MONEY)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=CODStatus.choices,
        default=CODStatus.UNSETTLED,
    )
    settlement: models.ForeignKey = models.ForeignKey(
        "ledger.Settlement",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="records",
    )
    settled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "cod_records"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["rider", "status", "created_at"],
                name="cod_rider_status_created_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="cod_amount_non_negative",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(status=CODStatus.UNSETTLED, settlement__isnull=True)
                    | models.Q(status=CODStatus.SETTLED, settlement__isnull=False)
                ),
                name="cod_settled_iff_in_settlement",
            ),
        ]

    @property
    def is_settled(self) -> bool:
        return self.status == CODStatus.SETTLED

    def __str__(self) -> str:
        return f"COD #{self.order_id} {self.amount} ({self.status})"
