"""
Spatial analysis helper functions.

Provides planar cross-checks for captured boundaries:
- UTM-projected polygon area
- Self-intersection detection
"""
import logging
from typing import Sequence

from shapely.geometry import Polygon

from app.utils.geo_projection import project_points
from app.utils.geodesy import HasLatLng, SQUARE_METERS_PER_HECTARE

logger = logging.getLogger(__name__)


def _to_polygon(points: Sequence[HasLatLng]) -> Polygon:
    projected = project_points(points)
    return Polygon(projected)


def projected_area_hectares(points: Sequence[HasLatLng]) -> float:
    """
    Calculate the area of a boundary after projecting it to UTM.

    This is a reference figure reported next to the fixed-latitude
    approximation; it does not replace it.

    Args:
        points: Boundary vertices in order

    Returns:
        Area in hectares, 0.0 for fewer than 3 points
    """
    if len(points) < 3:
        return 0.0

    polygon = _to_polygon(points)
    area = polygon.area / SQUARE_METERS_PER_HECTARE
    logger.debug(f"Projected area: {area:.4f} ha over {len(points)} vertices")
    return float(area)


def is_simple_polygon(points: Sequence[HasLatLng]) -> bool:
    """
    Check that the boundary outline does not cross itself.

    Args:
        points: Boundary vertices in order

    Returns:
        True if the closed outline is a valid simple polygon
    """
    if len(points) < 3:
        return False
    return bool(_to_polygon(points).is_valid)
