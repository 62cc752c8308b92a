"""
Unit tests for the polygon metrics engine.

Tests cover:
- Degenerate boundaries (fewer than 3 points)
- Shoelace area scaled at the reference latitude
- Perimeter closure over exactly n edges
- Accuracy level thresholds
- Determinism of recomputation
"""
import math
import pytest
from datetime import datetime, timezone

from app.domain.models import AccuracyLevel, BoundaryPoint
from app.services.domain.boundary_metrics import (
    EMPTY_METRICS,
    classify_accuracy,
    closed_perimeter,
    compute_boundary_metrics,
    polygon_area_hectares,
    shoelace_square_degrees,
)
from app.utils.geodesy import haversine_distance


def make_points(coords, accuracy=5.0):
    now = datetime.now(timezone.utc)
    return [
        BoundaryPoint(
            id=f"point_{i}",
            latitude=lat,
            longitude=lng,
            accuracy=accuracy,
            timestamp=now,
            order=i + 1,
        )
        for i, (lat, lng) in enumerate(coords)
    ]


SQUARE = [(0.0, 0.0), (0.0, 0.001), (0.001, 0.001), (0.001, 0.0)]
TRIANGLE = [(6.300, -10.800), (6.300, -10.798), (6.302, -10.799)]


# ============================================================
# Degenerate Boundary Tests
# ============================================================

class TestDegenerateBoundaries:
    """Boundaries with fewer than 3 points have no measurable shape."""

    def test_empty(self):
        assert compute_boundary_metrics([]) == EMPTY_METRICS

    def test_single_point(self):
        metrics = compute_boundary_metrics(make_points([(6.3, -10.8)], accuracy=1.0))
        assert metrics.area == 0.0
        assert metrics.perimeter == 0.0
        assert metrics.accuracy_level == AccuracyLevel.POOR

    @pytest.mark.parametrize("accuracy", [0.0, 1.0, 5.0, 50.0])
    def test_two_points_regardless_of_accuracy(self, accuracy):
        """[(0,0), (1,1)] yields zero area, zero perimeter, poor accuracy."""
        metrics = compute_boundary_metrics(make_points([(0, 0), (1, 1)], accuracy=accuracy))
        assert metrics.area == 0.0
        assert metrics.perimeter == 0.0
        assert metrics.accuracy_level == AccuracyLevel.POOR

    def test_area_helper_below_three_points(self):
        assert polygon_area_hectares(make_points([(0, 0), (1, 1)])) == 0.0


# ============================================================
# Area Tests
# ============================================================

class TestArea:
    """Tests for the shoelace area in hectares."""

    def test_square_area(self):
        """A 0.001 degree square scaled at 7 degrees latitude."""
        points = make_points(SQUARE, accuracy=2.0)
        expected = 1e-6 * 111319.9 ** 2 * math.cos(math.radians(7.0)) / 10000

        metrics = compute_boundary_metrics(points)

        assert metrics.area > 0
        assert metrics.area == pytest.approx(expected, rel=1e-9)
        assert metrics.area == pytest.approx(1.23, rel=1e-2)

    def test_area_independent_of_winding(self):
        clockwise = make_points(SQUARE)
        counter_clockwise = make_points(list(reversed(SQUARE)))
        assert polygon_area_hectares(clockwise) == pytest.approx(polygon_area_hectares(counter_clockwise))

    def test_shoelace_square_degrees(self):
        assert shoelace_square_degrees(make_points(SQUARE)) == pytest.approx(1e-6)

    def test_reference_latitude_override(self):
        points = make_points(SQUARE)
        at_equator = polygon_area_hectares(points, reference_latitude=0.0)
        assert at_equator == pytest.approx(1e-6 * 111319.9 ** 2 / 10000)

    def test_area_uses_fixed_reference_not_point_latitude(self):
        """Shifting a parcel north does not change its reported area."""
        shifted = [(lat + 20.0, lng) for lat, lng in SQUARE]
        assert polygon_area_hectares(make_points(shifted)) == pytest.approx(
            polygon_area_hectares(make_points(SQUARE)), rel=1e-6
        )


# ============================================================
# Perimeter Tests
# ============================================================

class TestPerimeter:
    """Tests for perimeter closure."""

    def test_square_perimeter_includes_closing_edge(self):
        points = make_points(SQUARE, accuracy=2.0)
        side = haversine_distance(points[0], points[1])

        metrics = compute_boundary_metrics(points)

        assert metrics.perimeter == pytest.approx(4 * side, rel=1e-6)
        assert metrics.perimeter == pytest.approx(4 * 111.19, rel=1e-3)

    def test_triangle_has_exactly_three_edges(self):
        points = make_points(TRIANGLE)
        a, b, c = points
        expected = haversine_distance(a, b) + haversine_distance(b, c) + haversine_distance(c, a)
        open_path = haversine_distance(a, b) + haversine_distance(b, c)

        perimeter = closed_perimeter(points)

        assert perimeter == pytest.approx(expected)
        assert perimeter > open_path

    def test_explicit_closing_point_does_not_double_closing_edge(self):
        """Repeating the first point adds a zero-length edge only."""
        points = make_points(TRIANGLE)
        explicitly_closed = make_points(TRIANGLE + [TRIANGLE[0]])

        assert closed_perimeter(explicitly_closed) == pytest.approx(closed_perimeter(points))


# ============================================================
# Accuracy Level Tests
# ============================================================

class TestAccuracyLevel:
    """Tests for the accuracy thresholds."""

    @pytest.mark.parametrize("mean,expected", [
        (0.0, AccuracyLevel.EXCELLENT),
        (2.0, AccuracyLevel.EXCELLENT),
        (2.01, AccuracyLevel.GOOD),
        (5.0, AccuracyLevel.GOOD),
        (5.01, AccuracyLevel.FAIR),
        (10.0, AccuracyLevel.FAIR),
        (10.01, AccuracyLevel.POOR),
        (100.0, AccuracyLevel.POOR),
    ])
    def test_thresholds(self, mean, expected):
        assert classify_accuracy(mean) == expected

    def test_square_with_two_meter_accuracy_is_excellent(self):
        metrics = compute_boundary_metrics(make_points(SQUARE, accuracy=2.0))
        assert metrics.accuracy_level == AccuracyLevel.EXCELLENT

    def test_mean_of_mixed_accuracies(self):
        points = make_points(SQUARE, accuracy=1.0)
        points[0].accuracy = 17.0  # mean = (17 + 1 + 1 + 1) / 4 = 5.0
        assert compute_boundary_metrics(points).accuracy_level == AccuracyLevel.GOOD


# ============================================================
# Determinism Tests
# ============================================================

class TestDeterminism:
    """Metrics are a pure function of the point list."""

    def test_repeated_computation_is_identical(self):
        points = make_points(TRIANGLE, accuracy=3.5)

        first = compute_boundary_metrics(points)
        second = compute_boundary_metrics(points)

        assert first == second
        assert first.area == second.area
        assert first.perimeter == second.perimeter
