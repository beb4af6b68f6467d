"""Order domain constants.

Delivery status choices, the transition table of the order state machine
and the fixed reason lists shown by the customer and rider apps.
"""

from decimal import Decimal

from django.db import models


class DeliveryStatus(models.TextChoices):
    NEW = "new", "New"
    ACCEPTED = "accepted", "Accepted"
    ENROUTE = "enroute", "En route"
    ONWAY = "onway", "On the way"
    DELIVERED = "delivered", "Delivered"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    DeliveryStatus.NEW: {
        DeliveryStatus.ACCEPTED,
        DeliveryStatus.FAILED,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.ACCEPTED: {
        DeliveryStatus.ENROUTE,
        DeliveryStatus.ONWAY,
        DeliveryStatus.FAILED,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.ENROUTE: {
        DeliveryStatus.ONWAY,
        DeliveryStatus.DELIVERED,
        DeliveryStatus.FAILED,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.ONWAY: {
        DeliveryStatus.DELIVERED,
        DeliveryStatus.FAILED,
        DeliveryStatus.CANCELLED,
    },
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.FAILED: set(),
    DeliveryStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {
    DeliveryStatus.DELIVERED,
    DeliveryStatus.FAILED,
    DeliveryStatus.CANCELLED,
}

# Statuses during which a rider holds the order.
IN_TRANSIT_STATES: set[str] = {
    DeliveryStatus.ACCEPTED,
    DeliveryStatus.ENROUTE,
    DeliveryStatus.ONWAY,
}


def can_transition(from_status: str, to_status: str) -> bool:
    """Single predicate shared by the customer, rider and admin surfaces."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


class PaymentMethod(models.TextChoices):
    COD = "COD", "Cash on delivery"
    ONLINE = "Online", "Online"


class DeliverySpeed(models.TextChoices):
    NORMAL = "normal", "Normal"
    FAST = "fast", "Fast"


class CancelReason(models.TextChoices):
    ORDERED_BY_MISTAKE = "Ordered by mistake", "Ordered by mistake"
    CHANGED_MY_MIND = "Changed my mind", "Changed my mind"
    DELIVERY_TOO_LONG = "Delivery taking too long", "Delivery taking too long"
    OTHER = "Other", "Other"


DEFAULT_OTHER_CANCEL_REASON = "Cancelled by user"


class FailureReason(models.TextChoices):
    ADDRESS_INCORRECT = "addr_bad", "Incorrect / incomplete address"
    NO_ONE_AVAILABLE = "no_one", "No one available to receive"
    NO_CONTACT = "no_contact", "Unable to contact customer"
    CLOSED = "closed", "Shop / house closed"
    RESTRICTED_AREA = "restricted", "Restricted / inaccessible area"
    RESCHEDULE = "reschedule", "Customer asked to reschedule"
    COD_NOT_READY = "cod_money", "COD amount not ready"
    WEATHER = "weather", "Bad weather / unsafe"
    LOGISTICS = "logistics", "Vehicle / logistics issue"
    DAMAGED = "damage", "Package damaged"
    OPS = "ops", "Failed by operations"


MONEY_QUANTUM = Decimal("0.01")
