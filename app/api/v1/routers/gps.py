"""
API router for GPS endpoints.

The capture device reports fixes and location errors here; the mapping
UI requests positions, logs map clicks and reads back recent coordinates.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Query, status
from typing import Annotated, Optional

from app.api.dependencies import LocationProviderDep, RegionBoundsDep, SyncCoordinatorDep
from app.api.v1.models.requests import LocationErrorRequest, MapClickRequest, PositionFixRequest
from app.api.v1.models.responses import CoordinateResponse, RecentCoordinatesResponse
from app.domain.models import GPSCoordinate, PositionFix, PositionOptions
from app.services.application.sync_coordinator import default_position_options
from app.utils.geodesy import RegionBounds, format_coordinate, is_within_bounds


router = APIRouter(
    prefix="/gps",
    tags=["gps"],
)


def to_coordinate_response(coordinate: GPSCoordinate, bounds: RegionBounds) -> CoordinateResponse:
    return CoordinateResponse(
        **coordinate.model_dump(exclude={"is_offline"}),
        formatted=(
            f"{format_coordinate(coordinate.latitude, 'lat')}, "
            f"{format_coordinate(coordinate.longitude, 'lng')}"
        ),
        within_region=is_within_bounds(coordinate.latitude, coordinate.longitude, bounds),
    )


@router.post(
    "/fixes",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Report a device fix",
    description="Deliver a fix from the capture device to waiting position requests and watches.",
)
async def report_fix(request: PositionFixRequest, provider: LocationProviderDep) -> dict:
    provider.set_permission(True)
    provider.push_fix(
        PositionFix(
            latitude=request.latitude,
            longitude=request.longitude,
            accuracy=request.accuracy,
            altitude=request.altitude,
            timestamp=request.timestamp or datetime.now(timezone.utc),
        )
    )
    return {"accepted": True}


@router.post(
    "/errors",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Report a device location error",
)
async def report_error(request: LocationErrorRequest, provider: LocationProviderDep) -> dict:
    if request.permission_denied:
        provider.set_permission(False)
    else:
        provider.push_error(request.reason)
    return {"accepted": True}


@router.get(
    "/position",
    response_model=CoordinateResponse,
    summary="Acquire the current position",
    description="""
    Wait for a single fix (or reuse a recent one), log it and return it.
    Responds 503 when the location is denied, times out or is unavailable.
    """,
    responses={503: {"description": "Location unavailable"}},
)
async def get_position(
    coordinator: SyncCoordinatorDep,
    bounds: RegionBoundsDep,
    timeout: Annotated[Optional[float], Query(gt=0, description="Seconds to wait for a fix")] = None,
    maximum_age: Annotated[Optional[float], Query(ge=0, description="Oldest acceptable cached fix, seconds")] = None,
    enable_high_accuracy: Optional[bool] = None,
) -> CoordinateResponse:
    defaults = default_position_options()
    options = PositionOptions(
        enable_high_accuracy=defaults.enable_high_accuracy if enable_high_accuracy is None else enable_high_accuracy,
        timeout=timeout or defaults.timeout,
        maximum_age=defaults.maximum_age if maximum_age is None else maximum_age,
    )
    coordinate = await coordinator.acquire_position(options)
    return to_coordinate_response(coordinate, bounds)


@router.post(
    "/click",
    response_model=CoordinateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a map-click coordinate",
    responses={400: {"description": "Coordinate out of range"}},
)
async def save_click(
    request: MapClickRequest,
    coordinator: SyncCoordinatorDep,
    bounds: RegionBoundsDep,
) -> CoordinateResponse:
    coordinate = await coordinator.save_click_coordinate(request.latitude, request.longitude)
    return to_coordinate_response(coordinate, bounds)


@router.get(
    "/recent",
    response_model=RecentCoordinatesResponse,
    summary="Recently captured coordinates",
)
async def get_recent(
    coordinator: SyncCoordinatorDep,
    hours: Annotated[float, Query(gt=0, le=24 * 30)] = 24,
) -> RecentCoordinatesResponse:
    coordinates = coordinator.get_recent_coordinates(hours)
    return RecentCoordinatesResponse(hours=hours, count=len(coordinates), coordinates=coordinates)
