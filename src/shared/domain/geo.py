"""Great-circle distance between two coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

EARTH_RADIUS_KM = 6371.0

Number = Union[float, int, Decimal, str]


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def from_values(
        cls, latitude: Optional[Number], longitude: Optional[Number]
    ) -> Optional[Coordinate]:
        """Build a coordinate, or ``None`` when either component is missing."""
        if latitude is None or longitude is None:
            return None
        lat, lon = float(latitude), float(longitude)
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            raise ValueError(f"Coordinate out of range: ({lat}, {lon})")
        return cls(latitude=lat, longitude=lon)

    def as_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Distance in kilometres along the earth's surface.

    Symmetric, zero for identical points and never negative.
    """
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push h a hair past 1.0 for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def distance_km(a: Optional[Coordinate], b: Optional[Coordinate]) -> Optional[float]:
    """``haversine_km`` that returns ``None`` when either side is unknown."""
    if a is None or b is None:
        return None
    return haversine_km(a, b)
