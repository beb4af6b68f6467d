"""Live tracking: phase inference, ETA and the live-location relay.

``infer_phase`` and ``estimate_eta_minutes`` are pure functions of a
location sample, the shop/customer coordinates and the current time, so the
same inputs always give the same answer.  Stale or missing data degrades to
``unknown`` / ``None``; nothing here raises on bad tracking data.

``LiveLocationRelay`` is the server side of the polling contract: the rider
app pushes samples, the customer app polls for the latest one.  Samples are
kept in the Django cache (Redis in production), one key per assignment,
each write replacing the previous sample.  The last known coordinate is also
written to the assignment row so a cache flush does not blank the map.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional

import structlog
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from modules.deliveries.constants import (
    LIVE_LOCATION_CACHE_KEY,
    DeliveryPhase,
    TrackingState,
)
from modules.deliveries.dtos import LiveLocationDTO, PointDTO
from shared.domain.geo import Coordinate, distance_km

if TYPE_CHECKING:
    from modules.deliveries.models import DeliveryAssignment
    from modules.deliveries.repositories.interfaces import IAssignmentRepository
    from modules.orders.models import Order
    from modules.riders.models import RiderProfile

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocationSample:
    coordinate: Coordinate
    recorded_at: datetime


@dataclass(frozen=True)
class PhaseThresholds:
    at_shop_km: float = 0.3
    near_customer_km: float = 0.3
    approaching_km: float = 1.5

    @classmethod
    def from_settings(cls) -> PhaseThresholds:
        return cls(
            at_shop_km=settings.PHASE_AT_SHOP_KM,
            near_customer_km=settings.PHASE_NEAR_CUSTOMER_KM,
            approaching_km=settings.PHASE_APPROACHING_KM,
        )


def is_stale(
    sample: Optional[LocationSample],
    now: datetime,
    max_age_seconds: Optional[int] = None,
) -> bool:
    """A missing sample counts as stale."""
    if sample is None:
        return True
    if max_age_seconds is None:
        max_age_seconds = settings.LIVE_LOCATION_STALE_AFTER_SECONDS
    return now - sample.recorded_at > timedelta(seconds=max_age_seconds)


def infer_phase(
    sample: Optional[LocationSample],
    shop: Optional[Coordinate],
    customer: Optional[Coordinate],
    now: datetime,
    thresholds: Optional[PhaseThresholds] = None,
    max_age_seconds: Optional[int] = None,
) -> str:
    """Coarse delivery phase from rider/shop/customer distances.

    Checked in order: at_shop, near_customer, approaching, on_the_way.
    ``unknown`` when the sample is missing or stale, or the customer
    coordinate is unknown.
    """
    thresholds = thresholds or PhaseThresholds.from_settings()
    if is_stale(sample, now, max_age_seconds) or customer is None:
        return DeliveryPhase.UNKNOWN

    to_shop = distance_km(sample.coordinate, shop)
    to_customer = distance_km(sample.coordinate, customer)

    if to_shop is not None and to_shop < thresholds.at_shop_km:
        return DeliveryPhase.AT_SHOP
    if to_customer < thresholds.near_customer_km:
        return DeliveryPhase.NEAR_CUSTOMER
    if to_customer < thresholds.approaching_km:
        return DeliveryPhase.APPROACHING
    return DeliveryPhase.ON_THE_WAY


def estimate_eta_minutes(
    sample: Optional[LocationSample],
    customer: Optional[Coordinate],
    now: datetime,
    speed_kmh: Optional[float] = None,
    max_age_seconds: Optional[int] = None,
) -> Optional[int]:
    """Whole minutes to the customer at the average rider speed.

    ``None`` when the rider position is missing or stale, or the customer
    coordinate is unknown.
    """
    if is_stale(sample, now, max_age_seconds) or customer is None:
        return None
    speed = speed_kmh or settings.RIDER_AVERAGE_SPEED_KMH
    if speed <= 0:
        return None
    distance = distance_km(sample.coordinate, customer)
    return int(math.ceil(distance / speed * 60))


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------


class LiveLocationRelay:
    """Stores rider samples and answers customer polls."""

    def __init__(self, assignment_repository: IAssignmentRepository) -> None:
        self._assignment_repo = assignment_repository

    @staticmethod
    def _cache_key(assignment_id: int) -> str:
        return LIVE_LOCATION_CACHE_KEY.format(assignment_id=assignment_id)

    def record_location(
        self,
        rider: RiderProfile,
        latitude: Decimal,
        longitude: Decimal,
        now: Optional[datetime] = None,
    ) -> int:
        """Store a sample for every active assignment of *rider*.

        Returns the number of assignments updated (0 when the rider is idle,
        which is not an error).
        """
        now = now or timezone.now()
        coordinate = Coordinate.from_values(latitude, longitude)
        assignments = list(self._assignment_repo.active_for_rider(rider.pk))

        for assignment in assignments:
            cache.set(
                self._cache_key(assignment.pk),
                {
                    "latitude": coordinate.latitude,
                    "longitude": coordinate.longitude,
                    "recorded_at": now.isoformat(),
                },
                timeout=settings.LIVE_LOCATION_CACHE_TTL_SECONDS,
            )
            self._assignment_repo.update_location(assignment, latitude, longitude, now)

        logger.debug(
            "tracking.location_recorded",
            rider_id=rider.pk,
            assignments=len(assignments),
        )
        return len(assignments)

    def latest_sample(self, assignment: DeliveryAssignment) -> Optional[LocationSample]:
        cached = cache.get(self._cache_key(assignment.pk))
        if cached:
            recorded_at = parse_datetime(cached["recorded_at"])
            if recorded_at is not None:
                return LocationSample(
                    coordinate=Coordinate(cached["latitude"], cached["longitude"]),
                    recorded_at=recorded_at,
                )
        coordinate = assignment.last_coordinate
        if coordinate is None or assignment.location_updated_at is None:
            return None
        return LocationSample(
            coordinate=coordinate, recorded_at=assignment.location_updated_at
        )

    def forget(self, assignments: Iterable[DeliveryAssignment]) -> None:
        cache.delete_many([self._cache_key(a.pk) for a in assignments])

    def poll(self, order: Order, now: Optional[datetime] = None) -> LiveLocationDTO:
        """Answer one customer poll for *order*.

        Terminal orders answer ``closed`` without touching the cache: the
        client stops polling on that answer.
        """
        now = now or timezone.now()
        shop = PointDTO.from_coordinate(order.shop_coordinate)
        customer = PointDTO.from_coordinate(order.customer_coordinate)

        if order.is_terminal:
            return LiveLocationDTO(
                order_id=order.pk,
                state=TrackingState.CLOSED,
                delivery_status=order.delivery_status,
                phase=DeliveryPhase.UNKNOWN,
                shop=shop,
                customer=customer,
            )

        assignment = self._assignment_repo.active_for_order(order.pk)
        if assignment is None:
            return LiveLocationDTO(
                order_id=order.pk,
                state=TrackingState.NO_ACTIVE_RIDER,
                delivery_status=order.delivery_status,
                phase=DeliveryPhase.UNKNOWN,
                shop=shop,
                customer=customer,
            )

        sample = self.latest_sample(assignment)
        stale = is_stale(sample, now)
        shop_coordinate = assignment.shop_coordinate or order.shop_coordinate
        customer_coordinate = (
            assignment.customer_coordinate or order.customer_coordinate
        )
        return LiveLocationDTO(
            order_id=order.pk,
            state=TrackingState.TRACKING,
            delivery_status=order.delivery_status,
            rider_id=assignment.rider_id,
            rider_name=assignment.rider.name,
            delivery_partner=(
                PointDTO.from_coordinate(sample.coordinate) if sample else None
            ),
            shop=PointDTO.from_coordinate(shop_coordinate),
            customer=PointDTO.from_coordinate(customer_coordinate),
            phase=infer_phase(sample, shop_coordinate, customer_coordinate, now),
            eta_minutes=estimate_eta_minutes(sample, customer_coordinate, now),
            promised_eta_minutes=assignment.promised_eta_minutes,
            is_stale=stale,
            location_updated_at=sample.recorded_at if sample else None,
        )
