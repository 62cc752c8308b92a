"""
UTM projection of boundary vertices, used for planar cross-checks.
"""
from functools import lru_cache
from typing import List, Sequence, Tuple

from pyproj import Transformer

from app.utils.geodesy import HasLatLng

WGS84 = "EPSG:4326"


def get_utm_zone(longitude: float) -> int:
    """UTM zone number (1-60); 180° falls in zone 60."""
    return min(int((longitude + 180) / 6) + 1, 60)


def get_utm_crs(longitude: float, latitude: float) -> str:
    # 326xx north of the equator, 327xx south
    prefix = "326" if latitude >= 0 else "327"
    return f"EPSG:{prefix}{get_utm_zone(longitude):02d}"


@lru_cache(maxsize=8)
def _transformer_to(crs: str) -> Transformer:
    return Transformer.from_crs(WGS84, crs, always_xy=True)


def project_points(points: Sequence[HasLatLng]) -> List[Tuple[float, float]]:
    """
    Project boundary vertices to metres in a single UTM zone.

    The zone is picked from the mean vertex, so a field on a zone edge
    is not split across two projections.

    Raises:
        ValueError: If no points are given
    """
    if not points:
        raise ValueError("Cannot project an empty boundary")

    mean_lat = sum(p.latitude for p in points) / len(points)
    mean_lng = sum(p.longitude for p in points) / len(points)
    transformer = _transformer_to(get_utm_crs(mean_lng, mean_lat))

    return [transformer.transform(p.longitude, p.latitude) for p in points]
