"""Rider identity.

Authentication lives in ``django.contrib.auth``; a user becomes a rider by
owning a ``RiderProfile``.  The profile row is also the lock taken while a
payout batch is built for that rider.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class RiderProfile(BaseModel):
    user: models.OneToOneField = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rider_profile",
    )
    name: models.CharField = models.CharField(max_length=120)
    phone: models.CharField = models.CharField(max_length=20, blank=True, default="")
    village: models.CharField = models.CharField(max_length=120, blank=True, default="")
    is_active: models.BooleanField = models.BooleanField(default=True)

    class Meta:
        db_table = "rider_profiles"
        ordering = ["name", "id"]
        indexes = [
            models.Index(fields=["village"], name="riders_village_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.village or '-'})"
