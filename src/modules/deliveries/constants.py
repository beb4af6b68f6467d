"""Delivery assignment and tracking constants."""

from django.db import models


class AssignmentEndReason(models.TextChoices):
    DELIVERED = "delivered", "Delivered"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"
    REASSIGNED = "reassigned", "Reassigned"


class RejectionReason(models.TextChoices):
    BUSY = "busy", "Busy - another task"
    VEHICLE = "vehicle", "Vehicle issue"
    TOO_FAR = "far", "Too far from pickup area"
    OUT_OF_AREA = "oor", "Out of assigned area"
    SAFETY = "safety", "Safety concerns"
    PAY = "pay", "Compensation too low"
    PERSONAL = "personal", "Personal reason"


class DeliveryPhase(models.TextChoices):
    AT_SHOP = "at_shop", "At shop"
    ON_THE_WAY = "on_the_way", "On the way"
    APPROACHING = "approaching", "Approaching"
    NEAR_CUSTOMER = "near_customer", "Near customer"
    UNKNOWN = "unknown", "Unknown"


class TrackingState(models.TextChoices):
    TRACKING = "tracking", "Tracking"
    NO_ACTIVE_RIDER = "no_active_rider", "No active rider"
    CLOSED = "closed", "Closed"


# Manual ETA buttons offered to the rider after accepting.
PROMISED_ETA_CHOICES = (5, 10, 20)

LIVE_LOCATION_CACHE_KEY = "live_location:{assignment_id}"
