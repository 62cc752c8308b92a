"""
Domain service: Boundary mapping session state machine.

A BoundaryMapper owns at most one BoundaryMapping at a time and moves it
through draft -> recording -> completed. Every point mutation recomputes
the derived metrics before returning. Completion is terminal; reset
discards the session entirely.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.config import settings
from app.domain.exceptions import (
    BoundaryCompletedError,
    InsufficientPointsError,
    InvalidCoordinateError,
)
from app.domain.models import BoundaryMapping, BoundaryPoint, BoundaryStatus
from app.services.domain.boundary_metrics import compute_boundary_metrics
from app.utils.events import EventSubject
from app.utils.geodesy import is_valid_coordinate
from app.utils.identifiers import generate_local_id
from app.utils.spatial_helpers import is_simple_polygon, projected_area_hectares

logger = logging.getLogger(__name__)


def default_boundary_name(created_at: datetime) -> str:
    return f"Boundary {created_at.date().isoformat()}"


class BoundaryMapper:
    """
    Single-owner boundary mapping session.

    All operations are serialized by a re-entrant lock, so concurrent
    callers never interleave point mutations. Returned boundaries are
    copies; mutating them does not affect the session.

    Listeners registered on ``on_update`` receive the boundary after every
    point mutation; listeners on ``on_complete`` receive it once, when it
    is completed.
    """

    def __init__(
        self,
        min_points: Optional[int] = None,
        default_accuracy: Optional[float] = None,
        reference_latitude: Optional[float] = None,
    ):
        """
        Initialize the mapper.

        Args:
            min_points: Default minimum point count for completion
            default_accuracy: Accuracy assumed when none is reported (meters)
            reference_latitude: Latitude used for the hectare conversion
        """
        self.min_points = min_points if min_points is not None else settings.boundary_min_points
        self.default_accuracy = (
            default_accuracy if default_accuracy is not None else settings.default_point_accuracy
        )
        self.reference_latitude = (
            reference_latitude if reference_latitude is not None else settings.reference_latitude_deg
        )
        self._lock = threading.RLock()
        self._boundary: Optional[BoundaryMapping] = None

        self.on_update: EventSubject[BoundaryMapping] = EventSubject("boundary_update")
        self.on_complete: EventSubject[BoundaryMapping] = EventSubject("boundary_complete")

    @property
    def boundary(self) -> Optional[BoundaryMapping]:
        """Snapshot of the current session, or None when there is none."""
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> Optional[BoundaryMapping]:
        if self._boundary is None:
            return None
        return self._boundary.model_copy(deep=True)

    def start(self, name: Optional[str] = None) -> BoundaryMapping:
        """
        Create a new draft session, or return the current one.

        Args:
            name: Boundary name; generated from the creation date if omitted
        """
        with self._lock:
            if self._boundary is None:
                created_at = datetime.now(timezone.utc)
                self._boundary = BoundaryMapping(
                    id=generate_local_id("boundary"),
                    name=name or default_boundary_name(created_at),
                    created_at=created_at,
                )
                logger.info(f"Started boundary session {self._boundary.id} ({self._boundary.name})")
            return self._snapshot()

    def add_point(
        self,
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> BoundaryMapping:
        """
        Append a point to the boundary.

        Creates a draft session if none exists and moves it to recording.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees
            accuracy: Reported accuracy in meters (default estimate if None)
            timestamp: Capture instant (now if None)

        Returns:
            The updated boundary

        Raises:
            InvalidCoordinateError: If the coordinate is out of range
            BoundaryCompletedError: If the session is already completed
        """
        if not is_valid_coordinate(latitude, longitude):
            raise InvalidCoordinateError(latitude, longitude)
        if accuracy is not None and accuracy < 0:
            raise ValueError(f"Accuracy must be non-negative, got {accuracy}")

        with self._lock:
            self._ensure_mutable()
            if self._boundary is None:
                self.start()

            point = BoundaryPoint(
                id=generate_local_id("point"),
                latitude=latitude,
                longitude=longitude,
                accuracy=self.default_accuracy if accuracy is None else accuracy,
                timestamp=timestamp or datetime.now(timezone.utc),
                order=len(self._boundary.points) + 1,
            )
            self._boundary.points.append(point)
            if self._boundary.status == BoundaryStatus.DRAFT:
                self._boundary.status = BoundaryStatus.RECORDING

            logger.debug(
                f"Added point #{point.order} ({latitude:.6f}, {longitude:.6f}) "
                f"to boundary {self._boundary.id}"
            )
            return self._recompute()

    def remove_last_point(self) -> Optional[BoundaryMapping]:
        """
        Drop the highest-order point.

        Status is left unchanged, even when the list becomes empty.

        Returns:
            The updated boundary, or None when there is no session
        """
        with self._lock:
            if self._boundary is None:
                return None
            if not self._boundary.points:
                return self._snapshot()
            self._ensure_mutable()

            removed = self._boundary.points.pop()
            logger.debug(f"Removed point #{removed.order} from boundary {self._boundary.id}")
            return self._recompute()

    def remove_point(self, point_id: str) -> Optional[BoundaryMapping]:
        """
        Remove a point by id and renumber the remaining points densely.

        Raises:
            KeyError: If no point has the given id
        """
        with self._lock:
            if self._boundary is None:
                return None
            self._ensure_mutable()

            remaining: List[BoundaryPoint] = [
                p for p in self._boundary.points if p.id != point_id
            ]
            if len(remaining) == len(self._boundary.points):
                raise KeyError(point_id)

            for index, point in enumerate(remaining, start=1):
                point.order = index
            self._boundary.points = remaining
            return self._recompute()

    def complete(self, min_points: Optional[int] = None) -> BoundaryMapping:
        """
        Finalize the boundary.

        Args:
            min_points: Required point count (mapper default if None)

        Returns:
            The completed boundary

        Raises:
            InsufficientPointsError: If fewer points than required; the
                session is left unchanged
            BoundaryCompletedError: If already completed
        """
        required = min_points if min_points is not None else self.min_points

        with self._lock:
            self._ensure_mutable()
            current = len(self._boundary.points) if self._boundary else 0
            if self._boundary is None or current < required:
                raise InsufficientPointsError(current=current, required=required)

            self._boundary.status = BoundaryStatus.COMPLETED
            self._boundary.completed_at = datetime.now(timezone.utc)
            logger.info(
                f"Completed boundary {self._boundary.id}: {current} points, "
                f"{self._boundary.area:.4f} ha, {self._boundary.perimeter:.1f} m, "
                f"accuracy {self._boundary.accuracy_level.value}"
            )

            completed = self._snapshot()
            self.on_complete.notify(completed)
            return completed

    def reset(self) -> None:
        """Discard the session, whatever its status."""
        with self._lock:
            if self._boundary is not None:
                logger.info(f"Discarded boundary session {self._boundary.id}")
            self._boundary = None

    def export(self) -> Optional[Dict[str, Any]]:
        """
        Build a JSON-ready export of the current boundary.

        Includes a flat coordinate list plus the UTM-projected area and a
        self-intersection flag as reference figures.
        """
        with self._lock:
            boundary = self._snapshot()
        if boundary is None:
            return None

        data = boundary.model_dump(mode="json")
        data["export_date"] = datetime.now(timezone.utc).isoformat()
        data["coordinates"] = [
            {
                "lat": p.latitude,
                "lng": p.longitude,
                "accuracy": p.accuracy,
                "order": p.order,
            }
            for p in boundary.points
        ]
        data["projected_area"] = projected_area_hectares(boundary.points)
        data["is_simple"] = is_simple_polygon(boundary.points)
        return data

    def _ensure_mutable(self) -> None:
        if self._boundary is not None and self._boundary.status == BoundaryStatus.COMPLETED:
            raise BoundaryCompletedError(
                f"Boundary {self._boundary.id} is completed and can no longer be modified"
            )

    def _recompute(self) -> BoundaryMapping:
        metrics = compute_boundary_metrics(self._boundary.points, self.reference_latitude)
        self._boundary.area = metrics.area
        self._boundary.perimeter = metrics.perimeter
        self._boundary.accuracy_level = metrics.accuracy_level

        updated = self._snapshot()
        self.on_update.notify(updated)
        return updated
