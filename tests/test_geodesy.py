"""
Unit tests for coordinate primitives and projection helpers.

Tests cover:
- Haversine distance
- Coordinate validation
- Square-degree to hectare scaling
- DMS formatting and region bounds
- UTM projection, projected area and polygon simplicity
"""
import math
import pytest

from app.domain.models import LatLng
from app.utils.geodesy import (
    LIBERIA_BOUNDS,
    RegionBounds,
    format_coordinate,
    haversine_distance,
    hectares_per_square_degree,
    is_valid_coordinate,
    is_within_bounds,
)
from app.utils.geo_projection import get_utm_crs, get_utm_zone, project_points
from app.utils.identifiers import generate_local_id
from app.utils.spatial_helpers import is_simple_polygon, projected_area_hectares


# ============================================================
# Distance Tests
# ============================================================

class TestHaversineDistance:
    """Tests for great-circle distance."""

    def test_same_point_is_zero(self):
        p = LatLng(lat=6.3, lng=-10.8)
        assert haversine_distance(p, p) == 0.0

    def test_one_degree_of_latitude(self):
        """One degree along a meridian is about 111.19 km on a 6371 km sphere."""
        d = haversine_distance(LatLng(lat=0.0, lng=0.0), LatLng(lat=1.0, lng=0.0))
        assert d == pytest.approx(111194.93, rel=1e-4)

    def test_symmetric(self):
        a = LatLng(lat=6.30, lng=-10.80)
        b = LatLng(lat=6.31, lng=-10.79)
        assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a))


# ============================================================
# Validation Tests
# ============================================================

class TestCoordinateValidation:
    """Tests for WGS84 range checks."""

    @pytest.mark.parametrize("lat,lng", [(0, 0), (90, 180), (-90, -180), (6.3, -10.8)])
    def test_valid(self, lat, lng):
        assert is_valid_coordinate(lat, lng)

    @pytest.mark.parametrize("lat,lng", [(91, 0), (-90.0001, 0), (0, 180.5), (0, -181)])
    def test_out_of_range(self, lat, lng):
        assert not is_valid_coordinate(lat, lng)

    def test_nan_is_invalid(self):
        assert not is_valid_coordinate(float("nan"), 0.0)
        assert not is_valid_coordinate(0.0, float("nan"))


# ============================================================
# Scaling & Formatting Tests
# ============================================================

class TestScalingAndFormatting:
    """Tests for hectare scaling, DMS output and region bounds."""

    def test_hectares_per_square_degree_at_seven_degrees(self):
        expected = 111319.9 ** 2 * math.cos(math.radians(7.0)) / 10000
        assert hectares_per_square_degree(7.0) == pytest.approx(expected)

    def test_hectares_per_square_degree_at_equator(self):
        assert hectares_per_square_degree(0.0) == pytest.approx(111319.9 ** 2 / 10000)

    def test_format_latitude_north(self):
        assert format_coordinate(6.5, "lat") == "6°30'0\"N"

    def test_format_longitude_west(self):
        assert format_coordinate(-10.25, "lng") == "10°15'0\"W"

    def test_format_unknown_axis(self):
        with pytest.raises(ValueError):
            format_coordinate(1.0, "alt")

    def test_monrovia_within_default_region(self):
        assert is_within_bounds(6.3156, -10.8074)

    def test_outside_default_region(self):
        assert not is_within_bounds(-32.3, 18.8, LIBERIA_BOUNDS)

    def test_custom_region(self):
        bounds = RegionBounds(north=1.0, south=-1.0, east=1.0, west=-1.0)
        assert is_within_bounds(0.0, 0.0, bounds)
        assert not is_within_bounds(2.0, 0.0, bounds)


# ============================================================
# Projection Tests
# ============================================================

class TestProjection:
    """Tests for UTM projection and projected polygon checks."""

    def test_utm_zone_for_monrovia(self):
        assert get_utm_zone(-10.8) == 29

    def test_utm_zone_clamped_at_antimeridian(self):
        assert get_utm_zone(180.0) == 60

    def test_utm_crs_hemisphere(self):
        assert get_utm_crs(-10.8, 6.3) == "EPSG:32629"
        assert get_utm_crs(18.8, -32.3) == "EPSG:32734"

    def test_project_points_preserves_distance(self):
        points = [LatLng(lat=6.300, lng=-10.800), LatLng(lat=6.301, lng=-10.800)]
        (x1, y1), (x2, y2) = project_points(points)
        assert math.hypot(x2 - x1, y2 - y1) == pytest.approx(110.6, rel=0.01)

    def test_project_points_empty(self):
        with pytest.raises(ValueError):
            project_points([])

    def test_projected_area_of_square(self, square_points):
        """A 0.001 degree square at 6.3N covers about 1.22 ha."""
        assert projected_area_hectares(square_points) == pytest.approx(1.225, rel=0.01)

    def test_projected_area_below_three_points(self, square_points):
        assert projected_area_hectares(square_points[:2]) == 0.0

    def test_square_is_simple(self, square_points):
        assert is_simple_polygon(square_points)

    def test_bow_tie_is_not_simple(self, square_points):
        a, b, c, d = square_points
        assert not is_simple_polygon([a, c, b, d])


# ============================================================
# Identifier Tests
# ============================================================

class TestIdentifiers:
    """Tests for local id generation."""

    def test_format(self):
        record_id = generate_local_id("farmer")
        prefix, millis, suffix = record_id.split("_")
        assert prefix == "farmer"
        assert millis.isdigit()
        assert len(suffix) == 9
        assert suffix.isalnum() and suffix == suffix.lower()

    def test_unique(self):
        assert len({generate_local_id("gps") for _ in range(200)}) == 200
