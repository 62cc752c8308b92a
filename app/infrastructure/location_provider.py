"""
Infrastructure layer: Location providers.

The sync coordinator treats the platform location service as an opaque
capability with two operations: a one-shot fix and a stream of fixes.
QueuedLocationProvider is fed by the capture device (through the HTTP
API) and serves those fixes to waiting requests.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Protocol, Union

from app.domain.exceptions import LocationUnavailableError
from app.domain.models import PositionFix, PositionOptions

logger = logging.getLogger(__name__)

WatchItem = Union[PositionFix, LocationUnavailableError]


class LocationProvider(Protocol):
    """Platform location capability."""

    async def get_current_position(self, options: PositionOptions) -> PositionFix:
        """
        Return a single fix.

        Raises:
            LocationUnavailableError: On denial, timeout or unavailability
        """
        ...

    def stream_positions(self, options: PositionOptions) -> AsyncIterator[WatchItem]:
        """
        Yield fixes as they arrive.

        Errors are yielded as LocationUnavailableError values so that a
        single failed fix does not end the stream.
        """
        ...


def fix_age_seconds(fix: PositionFix, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    timestamp = fix.timestamp
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return (now - timestamp).total_seconds()


class QueuedLocationProvider:
    """
    Location provider fed with fixes pushed by the capture device.

    Each waiting request or stream has its own queue; a pushed fix or
    error is delivered to all of them. The most recent fix is kept and
    served to requests whose ``maximum_age`` it satisfies.
    """

    def __init__(self):
        self._subscribers: List[asyncio.Queue] = []
        self._last_fix: Optional[PositionFix] = None
        self._permission_granted = True

    @property
    def last_fix(self) -> Optional[PositionFix]:
        return self._last_fix

    def set_permission(self, granted: bool) -> None:
        """Record whether the user allowed location access."""
        self._permission_granted = granted
        if not granted:
            self.push_error("permission denied")

    def push_fix(self, fix: PositionFix) -> None:
        """Deliver a fix from the device to every waiting consumer."""
        self._last_fix = fix
        for queue in list(self._subscribers):
            queue.put_nowait(fix)
        logger.debug(
            f"Received fix ({fix.latitude:.6f}, {fix.longitude:.6f}) ±{fix.accuracy:.1f}m "
            f"for {len(self._subscribers)} consumer(s)"
        )

    def push_error(self, reason: str) -> None:
        """Deliver a location error from the device to every waiting consumer."""
        error = LocationUnavailableError(reason)
        for queue in list(self._subscribers):
            queue.put_nowait(error)
        logger.warning(f"Location error reported by device: {reason}")

    def _cached_fix(self, options: PositionOptions) -> Optional[PositionFix]:
        if self._last_fix is None or options.maximum_age <= 0:
            return None
        if fix_age_seconds(self._last_fix) <= options.maximum_age:
            return self._last_fix
        return None

    def _check_permission(self) -> None:
        if not self._permission_granted:
            raise LocationUnavailableError("permission denied")

    async def get_current_position(self, options: PositionOptions) -> PositionFix:
        self._check_permission()
        cached = self._cached_fix(options)
        if cached is not None:
            return cached

        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            item = await asyncio.wait_for(queue.get(), timeout=options.timeout)
        except asyncio.TimeoutError:
            raise LocationUnavailableError(f"timeout after {options.timeout:g}s") from None
        finally:
            self._subscribers.remove(queue)

        if isinstance(item, LocationUnavailableError):
            raise item
        return item

    async def stream_positions(self, options: PositionOptions) -> AsyncIterator[WatchItem]:
        self._check_permission()
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            cached = self._cached_fix(options)
            if cached is not None:
                yield cached
            while True:
                try:
                    yield await asyncio.wait_for(queue.get(), timeout=options.timeout)
                except asyncio.TimeoutError:
                    yield LocationUnavailableError(f"timeout after {options.timeout:g}s")
        finally:
            self._subscribers.remove(queue)
