"""
Domain exceptions for boundary mapping and offline synchronisation.

Geometry and session errors are raised before any state is touched.
Location and sync errors are recoverable and usually absorbed by the
sync coordinator. Storage failures always propagate.
"""
from typing import Optional


class BoundaryMappingError(Exception):
    """Base class for all errors raised by this service."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCoordinateError(BoundaryMappingError, ValueError):
    """Latitude or longitude outside the valid WGS84 range."""

    def __init__(self, latitude: float, longitude: float):
        super().__init__(
            f"Invalid coordinate: latitude={latitude}, longitude={longitude} "
            f"(expected latitude in [-90, 90] and longitude in [-180, 180])"
        )
        self.latitude = latitude
        self.longitude = longitude


class InsufficientPointsError(BoundaryMappingError):
    """Completion attempted with fewer points than required."""

    def __init__(self, current: int, required: int):
        super().__init__(
            f"Boundary has {current} points, at least {required} required to complete"
        )
        self.current = current
        self.required = required


class BoundaryCompletedError(BoundaryMappingError):
    """A completed boundary cannot be mutated."""
    pass


class BoundaryNotCompletedError(BoundaryMappingError):
    """Operation requires a completed boundary."""
    pass


class LocationUnavailableError(BoundaryMappingError):
    """The location provider denied, timed out or could not produce a fix."""

    def __init__(self, reason: str):
        super().__init__(f"Location unavailable: {reason}")
        self.reason = reason


class SyncFailureError(BoundaryMappingError):
    """A local record could not be confirmed against the remote service."""

    def __init__(self, collection: str, record_id: str, reason: Optional[str] = None):
        message = f"Sync failed for {collection}/{record_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.collection = collection
        self.record_id = record_id
        self.reason = reason


class StorageFailureError(BoundaryMappingError):
    """The local durable store rejected an operation."""
    pass
