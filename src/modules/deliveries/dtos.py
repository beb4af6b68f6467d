"""Delivery DTOs.

- ``RejectOfferDTO`` / ``FailDeliveryDTO`` / ``PromiseEtaDTO``: rider inputs.
- ``PointDTO`` / ``LiveLocationDTO``: the live-location poll answer.
- ``RiderStatsDTO``: one rider's counts for a day.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.deliveries.constants import PROMISED_ETA_CHOICES, RejectionReason
from modules.orders.constants import FailureReason
from shared.domain.geo import Coordinate

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class RejectOfferDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str

    @field_validator("reason")
    @classmethod
    def reason_must_be_known(cls, v: str) -> str:
        if v not in RejectionReason.values:
            raise ValueError("Unknown rejection reason.")
        return v


class FailDeliveryDTO(BaseModel):
    """Failure reason code plus optional free text (stored after the label)."""

    model_config = ConfigDict(frozen=True)

    reason: str
    note: str = ""

    @field_validator("reason")
    @classmethod
    def reason_must_be_known(cls, v: str) -> str:
        if v not in FailureReason.values:
            raise ValueError("Unknown failure reason.")
        return v

    @property
    def reason_text(self) -> str:
        label = FailureReason(self.reason).label
        note = self.note.strip()
        return f"{label}: {note}" if note else label


class PromiseEtaDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    minutes: int

    @field_validator("minutes")
    @classmethod
    def minutes_must_be_offered(cls, v: int) -> int:
        if v not in PROMISED_ETA_CHOICES:
            raise ValueError(
                f"ETA must be one of {', '.join(str(m) for m in PROMISED_ETA_CHOICES)}."
            )
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class PointDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    @classmethod
    def from_coordinate(cls, coordinate: Optional[Coordinate]) -> Optional[PointDTO]:
        if coordinate is None:
            return None
        return cls(latitude=coordinate.latitude, longitude=coordinate.longitude)


class LiveLocationDTO(BaseModel):
    """Answer to one live-location poll.

    ``state`` is ``tracking``, ``no_active_rider`` or ``closed``; clients
    stop polling on ``closed``.
    """

    model_config = ConfigDict(frozen=True)

    order_id: int
    state: str
    delivery_status: str
    phase: str
    rider_id: Optional[int] = None
    rider_name: Optional[str] = None
    delivery_partner: Optional[PointDTO] = None
    shop: Optional[PointDTO] = None
    customer: Optional[PointDTO] = None
    eta_minutes: Optional[int] = None
    promised_eta_minutes: Optional[int] = None
    is_stale: bool = True
    location_updated_at: Optional[datetime] = None


class RiderStatsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    delivered: int
    failed: int
    rejected: int
    cod_total: Decimal
