"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import settings
from app.middleware.error_handler import ErrorHandlerMiddleware
from app.api.v1.routers import auth, boundaries, gps, offline
from app.infrastructure.connectivity import ConnectivityMonitor
from app.infrastructure.location_provider import QueuedLocationProvider
from app.infrastructure.remote_service_client import RemoteServiceClient
from app.infrastructure.storage.database import OfflineStore
from app.infrastructure.storage.offline_storage import OfflineStorage
from app.services.application.sync_coordinator import OfflineSyncCoordinator
from app.services.domain.boundary_session import BoundaryMapper

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_requests}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Opens the offline store and wires the long-lived services onto
    ``app.state``; closes them again on shutdown.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Offline store: {settings.database_url}")
    logger.info(f"Mapping config: reference_latitude={settings.reference_latitude_deg}, "
                f"min_points={settings.boundary_min_points}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    store = OfflineStore(settings.database_url)
    storage = OfflineStorage(store)
    remote_client = RemoteServiceClient()
    connectivity = ConnectivityMonitor()
    location_provider = QueuedLocationProvider()
    coordinator = OfflineSyncCoordinator(
        storage=storage,
        location_provider=location_provider,
        remote_client=remote_client,
        connectivity=connectivity,
    )
    restored = coordinator.restore_session()
    if restored is not None:
        logger.info(f"Restored session for '{restored.username}'")

    app.state.offline_storage = storage
    app.state.connectivity = connectivity
    app.state.location_provider = location_provider
    app.state.sync_coordinator = coordinator
    app.state.boundary_mapper = BoundaryMapper()

    yield

    # Shutdown
    logger.info("Shutting down application...")
    coordinator.stop_watching()
    await remote_client.close()
    store.close()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    GPS Boundary Mapping & Offline Sync API for field agents

    This API captures farm parcel boundaries from GPS fixes and keeps every
    field record on the device until it has been confirmed by the remote
    persistence service.

    ## Features

    - **Boundary Mapping**: Build a parcel outline vertex by vertex with live
      area (hectares), perimeter (meters) and GPS accuracy class
    - **Offline-First Storage**: Farmers, farm plots, inspections and every
      captured GPS coordinate are stored locally before any network call
    - **Opportunistic Sync**: Records are pushed when the network allows and
      marked synced, failed or left pending
    - **Offline Login**: Falls back to cached tokens and known field users
      when the remote service cannot be reached
    - **Robust Error Handling**: Automatic retries with exponential backoff for
      remote service calls
    - **Rate Limiting**: Protects the API from abuse

    ## Area Calculation

    Area uses the shoelace formula over longitude/latitude pairs, scaled to
    hectares at a fixed regional reference latitude. The export also reports
    a UTM-projected area for comparison.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(boundaries.router, prefix="/api/v1")
app.include_router(gps.router, prefix="/api/v1")
app.include_router(offline.router, prefix="/api/v1")
app.include_router(auth.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
