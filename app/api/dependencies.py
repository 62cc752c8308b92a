"""
Dependency injection for FastAPI.

Long-lived services are built in the application lifespan and kept on
``app.state``; these factories hand them to the routes.
"""
from typing import Annotated
from fastapi import Depends, Request

from app.config import settings
from app.infrastructure.connectivity import ConnectivityMonitor
from app.infrastructure.location_provider import QueuedLocationProvider
from app.infrastructure.storage.offline_storage import OfflineStorage
from app.services.application.sync_coordinator import OfflineSyncCoordinator
from app.services.domain.boundary_session import BoundaryMapper
from app.utils.geodesy import RegionBounds


def get_boundary_mapper(request: Request) -> BoundaryMapper:
    """
    Dependency factory for the boundary mapping session.

    Returns:
        BoundaryMapper shared by all requests
    """
    return request.app.state.boundary_mapper


def get_sync_coordinator(request: Request) -> OfflineSyncCoordinator:
    """
    Dependency factory for OfflineSyncCoordinator.

    Returns:
        OfflineSyncCoordinator instance
    """
    return request.app.state.sync_coordinator


def get_offline_storage(request: Request) -> OfflineStorage:
    return request.app.state.offline_storage


def get_location_provider(request: Request) -> QueuedLocationProvider:
    return request.app.state.location_provider


def get_connectivity(request: Request) -> ConnectivityMonitor:
    return request.app.state.connectivity


def get_region_bounds() -> RegionBounds:
    """Deployment region box from settings."""
    return RegionBounds(
        north=settings.region_north,
        south=settings.region_south,
        east=settings.region_east,
        west=settings.region_west,
    )


# Type aliases for cleaner route signatures
BoundaryMapperDep = Annotated[BoundaryMapper, Depends(get_boundary_mapper)]
SyncCoordinatorDep = Annotated[OfflineSyncCoordinator, Depends(get_sync_coordinator)]
OfflineStorageDep = Annotated[OfflineStorage, Depends(get_offline_storage)]
LocationProviderDep = Annotated[QueuedLocationProvider, Depends(get_location_provider)]
ConnectivityDep = Annotated[ConnectivityMonitor, Depends(get_connectivity)]
RegionBoundsDep = Annotated[RegionBounds, Depends(get_region_bounds)]
