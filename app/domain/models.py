"""
Domain models for boundary mapping and offline field data.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, databases, etc.).
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class BoundaryStatus(str, Enum):
    """Lifecycle of a boundary mapping session."""
    DRAFT = "draft"
    RECORDING = "recording"
    COMPLETED = "completed"


class AccuracyLevel(str, Enum):
    """Coarse quality class derived from mean GPS accuracy."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class SyncStatus(str, Enum):
    """Reconciliation state of a locally stored record."""
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


class CoordinateSource(str, Enum):
    """How a GPS coordinate was captured."""
    MANUAL = "manual"
    AUTO = "auto"
    MAP_CLICK = "map-click"


class UserType(str, Enum):
    """Portal a user signs in to."""
    REGULATORY = "regulatory"
    FARMER = "farmer"
    FIELD_AGENT = "field_agent"
    EXPORTER = "exporter"


# ============================================================
# Boundary Mapping
# ============================================================

class BoundaryPoint(BaseModel):
    """Single vertex of a boundary, in capture order."""
    id: str
    latitude: float = Field(description="Latitude in decimal degrees (WGS84)")
    longitude: float = Field(description="Longitude in decimal degrees (WGS84)")
    accuracy: float = Field(default=5.0, ge=0, description="Reported uncertainty in meters")
    timestamp: datetime
    order: int = Field(ge=1, description="1-based position within the boundary")


class BoundaryMapping(BaseModel):
    """A land parcel outline under construction or finalized."""
    id: str
    name: str
    points: List[BoundaryPoint] = Field(default_factory=list)
    area: float = Field(default=0.0, description="Area in hectares")
    perimeter: float = Field(default=0.0, description="Perimeter in meters")
    status: BoundaryStatus = BoundaryStatus.DRAFT
    accuracy_level: AccuracyLevel = AccuracyLevel.POOR
    created_at: datetime
    completed_at: Optional[datetime] = None


# ============================================================
# Offline Records
# ============================================================

class LatLng(BaseModel):
    """Plain coordinate pair as exchanged with the remote service."""
    lat: float
    lng: float

    @property
    def latitude(self) -> float:
        return self.lat

    @property
    def longitude(self) -> float:
        return self.lng


class FarmerRegistrationData(BaseModel):
    """Farmer registration payload captured in the field."""
    farmer_id: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    county: str
    district: Optional[str] = None
    gps_coordinates: Optional[str] = None
    farm_size: Optional[float] = None
    primary_crop: Optional[str] = None


class FarmerRegistration(FarmerRegistrationData):
    """Farmer registration as stored locally."""
    id: str
    is_offline: bool = True
    timestamp: int = Field(description="Local creation time, epoch milliseconds")
    status: SyncStatus = SyncStatus.PENDING


class MapPlotData(BaseModel):
    """Farm plot outline payload."""
    farmer_id: str
    coordinates: List[LatLng]
    area: float = Field(description="Area in hectares")
    crop_type: str
    name: Optional[str] = None
    perimeter: Optional[float] = None
    accuracy_level: Optional[AccuracyLevel] = None


class MapPlot(MapPlotData):
    """Farm plot as stored locally."""
    id: str
    is_offline: bool = True
    timestamp: int
    status: SyncStatus = SyncStatus.PENDING


class InspectionData(BaseModel):
    """Commodity inspection payload."""
    commodity_id: str
    inspector_id: str
    inspection_date: int = Field(description="Inspection time, epoch milliseconds")
    notes: str = ""
    photos: List[str] = Field(default_factory=list)
    gps_location: Optional[str] = None


class OfflineInspection(InspectionData):
    """Inspection as stored locally."""
    id: str
    is_offline: bool = True
    timestamp: int
    status: SyncStatus = SyncStatus.PENDING


class GPSCoordinateData(BaseModel):
    """A captured position before it is logged."""
    latitude: float
    longitude: float
    accuracy: float = Field(ge=0)
    altitude: Optional[float] = None
    source: CoordinateSource = CoordinateSource.AUTO


class GPSCoordinate(GPSCoordinateData):
    """Entry of the append-only coordinate log."""
    id: str
    timestamp: int
    is_offline: bool = True


class AuthToken(BaseModel):
    """Token cached locally for offline sign-in."""
    username: str
    token: str
    user_type: str
    role: str
    expires_at: int = Field(description="Absolute expiry, epoch milliseconds")
    is_offline: bool = True


# ============================================================
# Authentication
# ============================================================

class LoginCredentials(BaseModel):
    """Credentials submitted by a user."""
    username: str
    password: str
    user_type: UserType


class UserProfile(BaseModel):
    """Signed-in user."""
    id: int
    username: str
    user_type: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_offline: bool = False


class LoginResult(BaseModel):
    """Outcome of a login attempt."""
    success: bool
    token: Optional[str] = None
    user: Optional[UserProfile] = None
    message: Optional[str] = None
    is_offline: bool = False


# ============================================================
# Location
# ============================================================

class PositionOptions(BaseModel):
    """Options for a location request. Durations are in seconds."""
    enable_high_accuracy: bool = True
    timeout: float = Field(default=10.0, gt=0)
    maximum_age: float = Field(default=60.0, ge=0)


class PositionFix(BaseModel):
    """A fix reported by the location provider."""
    latitude: float
    longitude: float
    accuracy: float = Field(ge=0)
    altitude: Optional[float] = None
    timestamp: datetime
