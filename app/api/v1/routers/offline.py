"""
API router for offline field records.

Every save is stored locally first and pushed opportunistically; the
response reports the local id and the resulting sync status.
"""
from fastapi import APIRouter, Query, status
from typing import Annotated, List, Optional

from app.api.dependencies import ConnectivityDep, OfflineStorageDep, SyncCoordinatorDep
from app.api.v1.models.requests import ConnectivityRequest, SavePlotRequest, SyncRequest
from app.api.v1.models.responses import RecordCreatedResponse, StatsResponse, SyncResponse
from app.domain.models import (
    FarmerRegistration,
    FarmerRegistrationData,
    InspectionData,
    MapPlot,
    OfflineInspection,
    SyncStatus,
)
from app.infrastructure.storage.offline_storage import RecordCollection


router = APIRouter(
    prefix="/offline",
    tags=["offline"],
)


def _created(collection: RecordCollection, record_id: str) -> RecordCreatedResponse:
    record = collection.get_by_id(record_id)
    return RecordCreatedResponse(id=record_id, status=record.status.value)


def _list(
    collection: RecordCollection,
    sync_status: Optional[SyncStatus],
    farmer_id: Optional[str] = None,
) -> list:
    if farmer_id:
        records = collection.get_by_index("farmer_id", farmer_id)
        if sync_status:
            records = [r for r in records if r.status == sync_status]
        return records
    if sync_status:
        return collection.get_by_index("status", sync_status)
    return collection.get_all()


# ============================================================
# Farmers
# ============================================================

@router.post(
    "/farmers",
    response_model=RecordCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a farmer",
)
async def create_farmer(
    request: FarmerRegistrationData,
    coordinator: SyncCoordinatorDep,
) -> RecordCreatedResponse:
    record_id = await coordinator.save_farmer_registration(request)
    return _created(coordinator.storage.farmers, record_id)


@router.get("/farmers", response_model=List[FarmerRegistration], summary="List farmer registrations")
async def list_farmers(
    storage: OfflineStorageDep,
    sync_status: Annotated[Optional[SyncStatus], Query(alias="status")] = None,
    farmer_id: Optional[str] = None,
) -> List[FarmerRegistration]:
    return _list(storage.farmers, sync_status, farmer_id)


# ============================================================
# Farm Plots
# ============================================================

@router.post(
    "/plots",
    response_model=RecordCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a farm plot",
    description="""
    Store a plot outline. The area is computed from the coordinates.
    """,
    responses={400: {"description": "Coordinate out of range"}},
)
async def create_plot(
    request: SavePlotRequest,
    coordinator: SyncCoordinatorDep,
) -> RecordCreatedResponse:
    record_id = await coordinator.save_farm_plot(request.farmer_id, request.coordinates, request.crop_type)
    return _created(coordinator.storage.map_plots, record_id)


@router.get("/plots", response_model=List[MapPlot], summary="List farm plots")
async def list_plots(
    coordinator: SyncCoordinatorDep,
    sync_status: Annotated[Optional[SyncStatus], Query(alias="status")] = None,
    farmer_id: Optional[str] = None,
) -> List[MapPlot]:
    plots = coordinator.get_farm_plots(farmer_id)
    if sync_status:
        plots = [p for p in plots if p.status == sync_status]
    return plots


# ============================================================
# Inspections
# ============================================================

@router.post(
    "/inspections",
    response_model=RecordCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an inspection",
)
async def create_inspection(
    request: InspectionData,
    coordinator: SyncCoordinatorDep,
) -> RecordCreatedResponse:
    record_id = await coordinator.save_inspection(request)
    return _created(coordinator.storage.inspections, record_id)


@router.get("/inspections", response_model=List[OfflineInspection], summary="List inspections")
async def list_inspections(
    storage: OfflineStorageDep,
    sync_status: Annotated[Optional[SyncStatus], Query(alias="status")] = None,
) -> List[OfflineInspection]:
    return _list(storage.inspections, sync_status)


# ============================================================
# Sync & Statistics
# ============================================================

@router.get("/stats", response_model=StatsResponse, summary="Offline storage statistics")
async def get_stats(coordinator: SyncCoordinatorDep) -> StatsResponse:
    return StatsResponse(
        **coordinator.storage.get_stats(),
        last_sync=coordinator.storage.get_last_sync_time(),
        online=coordinator.is_online(),
    )


@router.post(
    "/sync",
    response_model=SyncResponse,
    summary="Push pending records",
    description="""
    Push every pending record (and optionally failed ones) to the remote
    service. Skipped without touching any record while offline.
    """,
)
async def sync_pending(
    coordinator: SyncCoordinatorDep,
    request: Optional[SyncRequest] = None,
) -> SyncResponse:
    report = await coordinator.sync_pending(include_failed=request.include_failed if request else False)
    return SyncResponse(
        skipped=report.skipped,
        interrupted=report.interrupted,
        synced_count=report.synced_count,
        failed_count=report.failed_count,
        synced=report.synced,
        failed=report.failed,
        pending=report.pending,
    )


@router.put(
    "/connectivity",
    summary="Report network state",
    description="Tell the service whether the device currently has network access.",
)
async def set_connectivity(request: ConnectivityRequest, connectivity: ConnectivityDep) -> dict:
    connectivity.set_online(request.online)
    return {"online": connectivity.online}
