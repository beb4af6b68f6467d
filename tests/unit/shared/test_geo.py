"""Unit tests for coordinates and great-circle distance."""

from __future__ import annotations

from decimal import Decimal

import pytest

from shared.domain.geo import Coordinate, distance_km, haversine_km

pytestmark = pytest.mark.unit

HYDERABAD = Coordinate(17.3850, 78.4867)
SHADNAGAR = Coordinate(17.0716, 78.2048)


class TestCoordinate:
    def test_from_decimal_values(self):
        coordinate = Coordinate.from_values(Decimal("17.385000"), Decimal("78.486700"))
        assert coordinate == Coordinate(17.385, 78.4867)

    def test_missing_component_gives_none(self):
        assert Coordinate.from_values(None, 78.4867) is None
        assert Coordinate.from_values(17.385, None) is None

    @pytest.mark.parametrize("latitude,longitude", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_out_of_range_rejected(self, latitude, longitude):
        with pytest.raises(ValueError):
            Coordinate.from_values(latitude, longitude)


class TestHaversine:
    def test_zero_for_identical_points(self):
        assert haversine_km(HYDERABAD, HYDERABAD) == 0

    def test_symmetric(self):
        assert haversine_km(HYDERABAD, SHADNAGAR) == pytest.approx(
            haversine_km(SHADNAGAR, HYDERABAD)
        )

    def test_known_distance(self):
        # Hyderabad to Shadnagar is roughly 46 km in a straight line.
        assert haversine_km(HYDERABAD, SHADNAGAR) == pytest.approx(46.0, abs=1.0)

    def test_antipodal_points_do_not_overflow(self):
        distance = haversine_km(Coordinate(0, 0), Coordinate(0, 180))
        assert distance == pytest.approx(20015.1, abs=1.0)

    def test_unknown_side_gives_none(self):
        assert distance_km(HYDERABAD, None) is None
        assert distance_km(None, None) is None
