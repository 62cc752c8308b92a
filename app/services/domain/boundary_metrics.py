"""
Domain service: Polygon metrics for captured boundaries.

Recomputes area, perimeter and accuracy class from the full ordered point
list. Area uses the shoelace formula over (longitude, latitude) treated as
planar coordinates, scaled to hectares at a fixed reference latitude. This
is a small-area approximation that degrades with parcel size and with
distance from the reference latitude.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Protocol

from app.config import settings
from app.domain.models import AccuracyLevel
from app.utils.geodesy import HasLatLng, haversine_distance, hectares_per_square_degree

MIN_POLYGON_POINTS = 3

# Upper bounds (inclusive) of mean accuracy in meters for each level
EXCELLENT_MAX_ACCURACY = 2.0
GOOD_MAX_ACCURACY = 5.0
FAIR_MAX_ACCURACY = 10.0


class MeasuredPoint(Protocol):
    latitude: float
    longitude: float
    accuracy: float


@dataclass(frozen=True)
class BoundaryMetrics:
    """Derived measurements of a boundary."""
    area: float
    """Area in hectares"""

    perimeter: float
    """Perimeter in meters, including the closing edge"""

    accuracy_level: AccuracyLevel


EMPTY_METRICS = BoundaryMetrics(area=0.0, perimeter=0.0, accuracy_level=AccuracyLevel.POOR)


def classify_accuracy(mean_accuracy: float) -> AccuracyLevel:
    """
    Map a mean GPS accuracy to a quality level.

    Args:
        mean_accuracy: Mean reported accuracy in meters

    Returns:
        AccuracyLevel for the given mean
    """
    if mean_accuracy <= EXCELLENT_MAX_ACCURACY:
        return AccuracyLevel.EXCELLENT
    if mean_accuracy <= GOOD_MAX_ACCURACY:
        return AccuracyLevel.GOOD
    if mean_accuracy <= FAIR_MAX_ACCURACY:
        return AccuracyLevel.FAIR
    return AccuracyLevel.POOR


def shoelace_square_degrees(points: Sequence[HasLatLng]) -> float:
    """Unsigned planar area of the (lon, lat) polygon in square degrees."""
    n = len(points)
    total = 0.0
    for i in range(n):
        j = (i + 1) % n
        total += points[i].longitude * points[j].latitude
        total -= points[j].longitude * points[i].latitude
    return abs(total) / 2


def polygon_area_hectares(
    points: Sequence[HasLatLng],
    reference_latitude: Optional[float] = None,
) -> float:
    """Shoelace area converted to hectares; 0.0 below 3 points."""
    if len(points) < MIN_POLYGON_POINTS:
        return 0.0
    if reference_latitude is None:
        reference_latitude = settings.reference_latitude_deg
    return shoelace_square_degrees(points) * hectares_per_square_degree(reference_latitude)


def closed_perimeter(points: Sequence[HasLatLng]) -> float:
    """Sum of haversine lengths over exactly n edges, last point back to first."""
    n = len(points)
    return sum(haversine_distance(points[i], points[(i + 1) % n]) for i in range(n))


def compute_boundary_metrics(
    points: Sequence[MeasuredPoint],
    reference_latitude: Optional[float] = None,
) -> BoundaryMetrics:
    """
    Compute area, perimeter and accuracy level of a boundary.

    Args:
        points: Boundary vertices ordered by their ``order`` field
        reference_latitude: Latitude in degrees used for the hectare
            conversion (defaults to the configured regional latitude)

    Returns:
        BoundaryMetrics for the given points; fewer than 3 points yield
        zero area, zero perimeter and a poor accuracy level
    """
    if len(points) < MIN_POLYGON_POINTS:
        return EMPTY_METRICS

    area = polygon_area_hectares(points, reference_latitude)
    perimeter = closed_perimeter(points)
    mean_accuracy = sum(p.accuracy for p in points) / len(points)

    return BoundaryMetrics(
        area=area,
        perimeter=perimeter,
        accuracy_level=classify_accuracy(mean_accuracy),
    )
