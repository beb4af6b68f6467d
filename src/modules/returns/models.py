"""Return request model.

Business rules implemented:
- At most one open (non-terminal) return per order, enforced by a partial
  unique constraint.  A rejected return does not block a new request.
- Refund fields are written only when the return is completed.
- Bank and UPI details are kept for the refund; they are masked in logs.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel
from modules.returns.constants import (
    OPEN_RETURN_STATES,
    TERMINAL_RETURN_STATES,
    RefundMode,
    ReturnStatus,
    can_transition,
)
from shared.domain.events import DomainEventMixin


class ReturnRequest(DomainEventMixin, BaseModel):
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="return_requests",
    )
    customer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="return_requests",
    )
    rider: models.ForeignKey = models.ForeignKey(
        "riders.RiderProfile",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="return_pickups",
    )
    reason: models.TextField = models.TextField()
    status: models.CharField = models.CharField(
        max_length=20,
        choices=ReturnStatus.choices,
        default=ReturnStatus.PENDING,
    )

    # Refund destination supplied by the customer
    bank_account_name: models.CharField = models.CharField(
        max_length=120, blank=True, default=""
    )
    bank_account_number: models.CharField = models.CharField(
        max_length=34, blank=True, default=""
    )
    ifsc: models.CharField = models.CharField(max_length=11, blank=True, default="")
    upi_id: models.CharField = models.CharField(max_length=100, blank=True, default="")
    phone: models.CharField = models.CharField(max_length=20, blank=True, default="")

    # Refund, written on completion
    refund_amount: models.DecimalField = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    refund_mode: models.CharField = models.CharField(
        max_length=10, choices=RefundMode.choices, default=RefundMode.UPI
    )
    refund_reference: models.CharField = models.CharField(
        max_length=120, blank=True, default=""
    )
    admin_note: models.TextField = models.TextField(blank=True, default="")

    accepted_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    picked_up_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    delivered_to_shop_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )
    completed_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    rejected_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "return_requests"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="returns_status_idx"),
            models.Index(fields=["rider", "status"], name="returns_rider_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(status__in=sorted(OPEN_RETURN_STATES)),
                name="one_open_return_per_order",
            ),
            models.CheckConstraint(
                condition=models.Q(refund_amount__isnull=True)
                | models.Q(refund_amount__gt=0),
                name="returns_refund_positive",
            ),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RETURN_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return can_transition(self.status, new_status)

    def __str__(self) -> str:
        return f"Return {self.pk} for #{self.order_id} ({self.status})"
