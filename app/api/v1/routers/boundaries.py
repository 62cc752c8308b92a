"""
API router for boundary mapping endpoints.

Drives the single boundary session: add and remove vertices, complete,
export and hand the completed outline to offline storage.
"""
from fastapi import APIRouter, HTTPException, Path, status
from typing import Annotated, Any, Dict, Optional, TypeVar

from app.api.dependencies import BoundaryMapperDep, SyncCoordinatorDep
from app.api.v1.models.requests import (
    AddPointRequest,
    CompleteBoundaryRequest,
    SaveBoundaryRequest,
    StartBoundaryRequest,
)
from app.api.v1.models.responses import RecordCreatedResponse
from app.domain.models import BoundaryMapping


T = TypeVar("T")

router = APIRouter(
    prefix="/boundaries/current",
    tags=["boundaries"],
)


def _require_session(boundary: Optional[T]) -> T:
    if boundary is None:
        raise HTTPException(status_code=404, detail="No boundary mapping session in progress")
    return boundary


@router.get(
    "",
    response_model=BoundaryMapping,
    summary="Get the current boundary",
    responses={404: {"description": "No session in progress"}},
)
async def get_current_boundary(mapper: BoundaryMapperDep) -> BoundaryMapping:
    return _require_session(mapper.boundary)


@router.post(
    "",
    response_model=BoundaryMapping,
    status_code=status.HTTP_201_CREATED,
    summary="Start a boundary session",
    description="Start a new session, or return the one already in progress.",
)
async def start_boundary(
    mapper: BoundaryMapperDep,
    request: Optional[StartBoundaryRequest] = None,
) -> BoundaryMapping:
    return mapper.start(request.name if request else None)


@router.post(
    "/points",
    response_model=BoundaryMapping,
    summary="Add a vertex",
    description="""
    Append a vertex to the current boundary, creating a draft session if
    none exists. Area, perimeter and accuracy level are recomputed from
    the full point list.
    """,
    responses={
        400: {"description": "Coordinate out of range"},
        409: {"description": "Boundary already completed"},
    }
)
async def add_point(request: AddPointRequest, mapper: BoundaryMapperDep) -> BoundaryMapping:
    return mapper.add_point(
        request.latitude,
        request.longitude,
        accuracy=request.accuracy,
        timestamp=request.timestamp,
    )


@router.delete(
    "/points/last",
    response_model=BoundaryMapping,
    summary="Undo the last vertex",
)
async def remove_last_point(mapper: BoundaryMapperDep) -> BoundaryMapping:
    return _require_session(mapper.remove_last_point())


@router.delete(
    "/points/{point_id}",
    response_model=BoundaryMapping,
    summary="Remove a vertex",
    description="Remove a vertex by id; the remaining vertices are renumbered.",
)
async def remove_point(
    point_id: Annotated[str, Path(description="Id of the vertex to remove")],
    mapper: BoundaryMapperDep,
) -> BoundaryMapping:
    try:
        boundary = mapper.remove_point(point_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Point '{point_id}' not found")
    return _require_session(boundary)


@router.post(
    "/complete",
    response_model=BoundaryMapping,
    summary="Complete the boundary",
    responses={409: {"description": "Not enough points, or already completed"}},
)
async def complete_boundary(
    mapper: BoundaryMapperDep,
    request: Optional[CompleteBoundaryRequest] = None,
) -> BoundaryMapping:
    return mapper.complete(request.min_points if request else None)


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard the current boundary",
)
async def reset_boundary(mapper: BoundaryMapperDep) -> None:
    mapper.reset()


@router.get(
    "/export",
    summary="Export the current boundary",
    description="""
    JSON export of the boundary with a flat coordinate list. Also reports
    the UTM-projected area and whether the outline is self-intersecting,
    as reference figures next to the regional-approximation area.
    """,
)
async def export_boundary(mapper: BoundaryMapperDep) -> Dict[str, Any]:
    return _require_session(mapper.export())


@router.post(
    "/save",
    response_model=RecordCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save the completed boundary as a farm plot",
    description="""
    Store the completed boundary in offline storage as a farm plot and try
    to push it when online. The session is discarded once stored.
    """,
    responses={409: {"description": "Boundary not completed"}},
)
async def save_boundary(
    request: SaveBoundaryRequest,
    mapper: BoundaryMapperDep,
    coordinator: SyncCoordinatorDep,
) -> RecordCreatedResponse:
    boundary = _require_session(mapper.boundary)
    plot_id = await coordinator.save_boundary(boundary, request.farmer_id, request.crop_type)
    mapper.reset()

    plot = coordinator.storage.map_plots.get_by_id(plot_id)
    return RecordCreatedResponse(id=plot_id, status=plot.status.value)
