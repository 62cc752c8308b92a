"""
API response models using Pydantic.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from app.domain.models import CoordinateSource, GPSCoordinate


class CoordinateResponse(BaseModel):
    """Logged GPS coordinate with display helpers."""
    id: str
    latitude: float = Field(description="Latitude coordinate in degrees", examples=[6.3156])
    longitude: float = Field(description="Longitude coordinate in degrees", examples=[-10.8074])
    accuracy: float = Field(description="Reported uncertainty in meters")
    altitude: Optional[float] = None
    timestamp: int = Field(description="Capture time, epoch milliseconds")
    source: CoordinateSource
    formatted: str = Field(description="Degrees/minutes/seconds rendering")
    within_region: bool = Field(description="Whether the coordinate lies in the deployment region")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "gps_1718000000000_k3j9x0a1b",
                "latitude": 6.3156,
                "longitude": -10.8074,
                "accuracy": 3.2,
                "altitude": None,
                "timestamp": 1718000000000,
                "source": "auto",
                "formatted": "6°18'56.16\"N, 10°48'26.64\"W",
                "within_region": True,
            }
        }


class RecentCoordinatesResponse(BaseModel):
    """Coordinates captured within a time window."""
    hours: float
    count: int
    coordinates: List[GPSCoordinate]


class RecordCreatedResponse(BaseModel):
    """Local id of a newly stored record."""
    id: str
    status: str = Field(description="Sync status right after the save attempt")


class StatsResponse(BaseModel):
    """Offline storage statistics."""
    farmers: int
    map_plots: int
    inspections: int
    gps_coordinates: int
    auth_tokens: int
    last_sync: int = Field(description="Last completed sync, epoch milliseconds (0 if never)")
    online: bool


class SyncResponse(BaseModel):
    """Outcome of a reconciliation run."""
    skipped: bool
    interrupted: bool
    synced_count: int
    failed_count: int
    synced: Dict[str, List[str]]
    failed: Dict[str, List[str]]
    pending: Dict[str, List[str]]
