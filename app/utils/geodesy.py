"""
Coordinate and distance primitives.

Provides utilities for:
- Great-circle distance (haversine)
- Coordinate validation
- Square-degree to hectare scaling at a reference latitude
- Degree/minute/second formatting
- Deployment region bounds checks
"""
import math
from dataclasses import dataclass
from typing import Protocol

EARTH_RADIUS_M = 6371000.0
METERS_PER_DEGREE = 111319.9
SQUARE_METERS_PER_HECTARE = 10000.0


class HasLatLng(Protocol):
    latitude: float
    longitude: float


@dataclass(frozen=True)
class RegionBounds:
    """Axis-aligned latitude/longitude box."""
    north: float
    south: float
    east: float
    west: float


# Approximate bounds of Liberia, the nominal deployment region
LIBERIA_BOUNDS = RegionBounds(north=8.55, south=4.35, east=-7.37, west=-11.49)


def haversine_distance(p1: HasLatLng, p2: HasLatLng) -> float:
    """
    Great-circle distance between two points.

    Args:
        p1: First point with latitude/longitude in degrees
        p2: Second point with latitude/longitude in degrees

    Returns:
        Distance in meters
    """
    phi1 = math.radians(p1.latitude)
    phi2 = math.radians(p2.latitude)
    d_phi = math.radians(p2.latitude - p1.latitude)
    d_lambda = math.radians(p2.longitude - p1.longitude)

    a = (
        math.sin(d_phi / 2) * math.sin(d_phi / 2)
        + math.cos(phi1) * math.cos(phi2)
        * math.sin(d_lambda / 2) * math.sin(d_lambda / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """Return True iff lat is in [-90, 90] and lng in [-180, 180]."""
    # NaN fails both comparisons
    return -90 <= lat <= 90 and -180 <= lng <= 180


def hectares_per_square_degree(reference_latitude_deg: float) -> float:
    """
    Hectares covered by one square degree near the reference latitude.

    Local small-area approximation: east-west degrees shrink with
    cos(latitude), north-south degrees are taken as constant.

    Args:
        reference_latitude_deg: Reference latitude in degrees

    Returns:
        Conversion factor from square degrees to hectares
    """
    reference_latitude_rad = math.radians(reference_latitude_deg)
    return (
        METERS_PER_DEGREE * METERS_PER_DEGREE
        * math.cos(reference_latitude_rad)
        / SQUARE_METERS_PER_HECTARE
    )


def format_coordinate(value: float, axis: str) -> str:
    """
    Format a decimal-degree value as degrees, minutes and seconds.

    Args:
        value: Coordinate in decimal degrees
        axis: "lat" or "lng"

    Returns:
        String such as ``6°18'3.6"N``
    """
    if axis == "lat":
        direction = "N" if value >= 0 else "S"
    elif axis == "lng":
        direction = "E" if value >= 0 else "W"
    else:
        raise ValueError(f"Unknown axis '{axis}', expected 'lat' or 'lng'")

    absolute = abs(value)
    degrees = math.floor(absolute)
    minutes = math.floor((absolute - degrees) * 60)
    seconds = round(((absolute - degrees) * 60 - minutes) * 60, 2)

    return f"{degrees}°{minutes}'{seconds:g}\"{direction}"


def is_within_bounds(lat: float, lng: float, bounds: RegionBounds = LIBERIA_BOUNDS) -> bool:
    """Check whether a coordinate falls inside the region box."""
    return bounds.south <= lat <= bounds.north and bounds.west <= lng <= bounds.east
