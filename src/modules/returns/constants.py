"""Return workflow constants."""

from django.db import models


class ReturnStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    PICKED_UP = "picked_up", "Picked up"
    DELIVERED_TO_SHOP = "delivered_to_shop", "Delivered to shop"
    COMPLETED = "completed", "Completed"
    REJECTED = "rejected", "Rejected"


RETURN_TRANSITIONS: dict[str, set[str]] = {
    ReturnStatus.PENDING: {ReturnStatus.ACCEPTED, ReturnStatus.REJECTED},
    ReturnStatus.ACCEPTED: {
        ReturnStatus.PICKED_UP,
        ReturnStatus.COMPLETED,
        ReturnStatus.REJECTED,
    },
    ReturnStatus.PICKED_UP: {
        ReturnStatus.DELIVERED_TO_SHOP,
        ReturnStatus.COMPLETED,
        ReturnStatus.REJECTED,
    },
    ReturnStatus.DELIVERED_TO_SHOP: {ReturnStatus.COMPLETED, ReturnStatus.REJECTED},
    ReturnStatus.COMPLETED: set(),
    ReturnStatus.REJECTED: set(),
}

TERMINAL_RETURN_STATES: set[str] = {ReturnStatus.COMPLETED, ReturnStatus.REJECTED}

OPEN_RETURN_STATES: set[str] = set(ReturnStatus.values) - TERMINAL_RETURN_STATES

# Statuses from which a refund may be recorded.
REFUNDABLE_STATES: set[str] = {
    ReturnStatus.ACCEPTED,
    ReturnStatus.PICKED_UP,
    ReturnStatus.DELIVERED_TO_SHOP,
}

# Steps a rider may report through the status endpoint.
RIDER_STEPS: set[str] = {ReturnStatus.PICKED_UP, ReturnStatus.DELIVERED_TO_SHOP}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in RETURN_TRANSITIONS.get(from_status, set())


class RefundMode(models.TextChoices):
    UPI = "UPI", "UPI"
    BANK = "BANK", "Bank transfer"
    CASH = "CASH", "Cash"
