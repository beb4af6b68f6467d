"""DRF permissions for the rider app surface."""

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission

from modules.riders.models import RiderProfile


def rider_for_user(user) -> Optional[RiderProfile]:
    """Return the user's active rider profile, or ``None``."""
    if not user or not user.is_authenticated:
        return None
    rider = getattr(user, "rider_profile", None)
    if rider is None or not rider.is_active:
        return None
    return rider


class IsRider(BasePermission):
    message = "Rider profile required."

    def has_permission(self, request, view) -> bool:
        return rider_for_user(request.user) is not None
