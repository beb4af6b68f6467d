"""Rider repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.riders.models import RiderProfile


class IRiderRepository(IRepository["RiderProfile"]):
    @abstractmethod
    def search(self, query: str = "") -> models.QuerySet:
        """Riders matching a free-text query over name, village and phone."""
