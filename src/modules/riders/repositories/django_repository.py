"""Django ORM implementation of the rider repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.db import models
from django.db.models import Q

from modules.riders.models import RiderProfile
from modules.riders.repositories.interfaces import IRiderRepository


class RiderDjangoRepository(IRiderRepository):
    def get_by_id(self, id: int) -> Optional[RiderProfile]:
        return RiderProfile.objects.select_related("user").filter(pk=id).first()

    def get_for_update(self, id: int) -> Optional[RiderProfile]:
        return RiderProfile.objects.select_for_update().filter(pk=id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        queryset = RiderProfile.objects.select_related("user")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: RiderProfile) -> RiderProfile:
        entity.save()
        return entity

    def search(self, query: str = "") -> models.QuerySet:
        queryset = self.list()
        query = (query or "").strip()
        if query:
            queryset = queryset.filter(
                Q(name__icontains=query)
                | Q(village__icontains=query)
                | Q(phone__icontains=query)
            )
        return queryset
