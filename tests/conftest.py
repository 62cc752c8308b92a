"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample boundary points
- Offline store and storage on a temporary SQLite file
- Location provider and connectivity doubles
- Mock remote service client
- Sync coordinator wired from the above
- FastAPI test client
"""
import pytest
from datetime import datetime, timezone
from typing import Iterator, List
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from app.config import settings
from app.domain.models import LatLng, PositionFix
from app.infrastructure.connectivity import ConnectivityMonitor
from app.infrastructure.location_provider import QueuedLocationProvider
from app.infrastructure.remote_service_client import PushResponse, RemoteServiceClient
from app.infrastructure.storage.database import OfflineStore
from app.infrastructure.storage.offline_storage import OfflineStorage
from app.services.application.sync_coordinator import OfflineSyncCoordinator
from app.services.domain.boundary_session import BoundaryMapper


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def square_points() -> List[LatLng]:
    """Square of 0.001 degrees on a side near Monrovia."""
    return [
        LatLng(lat=6.300, lng=-10.800),
        LatLng(lat=6.300, lng=-10.799),
        LatLng(lat=6.301, lng=-10.799),
        LatLng(lat=6.301, lng=-10.800),
    ]


@pytest.fixture
def sample_fix() -> PositionFix:
    """A fresh fix with good accuracy."""
    return PositionFix(
        latitude=6.3156,
        longitude=-10.8074,
        accuracy=3.0,
        timestamp=datetime.now(timezone.utc),
    )


@pytest.fixture
def mapper() -> BoundaryMapper:
    """Boundary mapper with the default configuration."""
    return BoundaryMapper(min_points=3, default_accuracy=5.0, reference_latitude=7.0)


# ============================================================
# Storage Fixtures
# ============================================================

@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "offline_test.db")


@pytest.fixture
def offline_store(db_path) -> Iterator[OfflineStore]:
    """Open offline store on a temporary SQLite file."""
    store = OfflineStore(f"sqlite:///{db_path}")
    store.open()
    yield store
    store.close()


@pytest.fixture
def storage(offline_store) -> OfflineStorage:
    return OfflineStorage(offline_store)


# ============================================================
# Collaborator Fixtures
# ============================================================

@pytest.fixture
def location_provider() -> QueuedLocationProvider:
    return QueuedLocationProvider()


@pytest.fixture
def online() -> ConnectivityMonitor:
    return ConnectivityMonitor(online=True)


@pytest.fixture
def offline() -> ConnectivityMonitor:
    return ConnectivityMonitor(online=False)


@pytest.fixture
def mock_remote_client() -> AsyncMock:
    """Remote service client that accepts every push."""
    mock_client = AsyncMock(spec=RemoteServiceClient)
    mock_client.push.return_value = PushResponse(id=1)
    return mock_client


@pytest.fixture
def coordinator(storage, location_provider, mock_remote_client, online) -> OfflineSyncCoordinator:
    """Coordinator on a temporary store, online, with a mocked remote service."""
    return OfflineSyncCoordinator(
        storage=storage,
        location_provider=location_provider,
        remote_client=mock_remote_client,
        connectivity=online,
    )


@pytest.fixture
def offline_coordinator(storage, location_provider, mock_remote_client, offline) -> OfflineSyncCoordinator:
    """Coordinator on a temporary store with no network."""
    return OfflineSyncCoordinator(
        storage=storage,
        location_provider=location_provider,
        remote_client=mock_remote_client,
        connectivity=offline,
    )


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client(monkeypatch, tmp_path) -> Iterator[TestClient]:
    """
    Test client running the full lifespan on a temporary store.

    The service starts offline so that no test reaches the network.
    """
    from app.main import app, limiter

    monkeypatch.setattr(settings, "database_url", f"sqlite:///{tmp_path / 'api_test.db'}")
    monkeypatch.setattr(settings, "assume_online", False)
    limiter.reset()

    with TestClient(app) as client:
        yield client
