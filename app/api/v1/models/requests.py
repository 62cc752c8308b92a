"""
API request models using Pydantic.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.domain.models import LatLng


class AddPointRequest(BaseModel):
    """Vertex to append to the current boundary."""
    latitude: float = Field(description="Latitude in decimal degrees", examples=[6.3156])
    longitude: float = Field(description="Longitude in decimal degrees", examples=[-10.8074])
    accuracy: Optional[float] = Field(
        default=None,
        description="Reported uncertainty in meters (configured default when omitted)",
    )
    timestamp: Optional[datetime] = None


class StartBoundaryRequest(BaseModel):
    """Optional name for a new boundary session."""
    name: Optional[str] = None


class CompleteBoundaryRequest(BaseModel):
    """Completion options."""
    min_points: Optional[int] = Field(default=None, ge=0)


class SaveBoundaryRequest(BaseModel):
    """Farm plot metadata for a completed boundary."""
    farmer_id: str
    crop_type: str


class PositionFixRequest(BaseModel):
    """Fix reported by the capture device."""
    latitude: float
    longitude: float
    accuracy: float = Field(ge=0)
    altitude: Optional[float] = None
    timestamp: Optional[datetime] = Field(
        default=None,
        description="Time of the fix (server time when omitted)",
    )


class LocationErrorRequest(BaseModel):
    """Location error reported by the capture device."""
    reason: str = Field(examples=["permission denied"])
    permission_denied: bool = False


class MapClickRequest(BaseModel):
    """Coordinate picked on the map."""
    latitude: float
    longitude: float


class ConnectivityRequest(BaseModel):
    """Network state reported by the device."""
    online: bool


class SyncRequest(BaseModel):
    include_failed: bool = False


class SavePlotRequest(BaseModel):
    """Farm plot outline; the area is computed server side."""
    farmer_id: str
    coordinates: List[LatLng] = Field(min_length=1)
    crop_type: str
