"""
SQLAlchemy tables of the offline store.

Column names match the pydantic field names in app.domain.models so rows
convert both ways without a mapping table. Indexed columns are the only
fields accepted by secondary-index lookups.
"""
from sqlalchemy import JSON, BigInteger, Boolean, Column, Float, String, Text

from app.infrastructure.storage.database import Base


class FarmerRecord(Base):
    """Farmer registration captured offline."""
    __tablename__ = "farmers"

    id = Column(String(64), primary_key=True)
    farmer_id = Column(String(64), nullable=False, index=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    phone_number = Column(String(40), nullable=True)
    county = Column(String(80), nullable=False)
    district = Column(String(80), nullable=True)
    gps_coordinates = Column(String(120), nullable=True)
    farm_size = Column(Float, nullable=True)
    primary_crop = Column(String(80), nullable=True)

    is_offline = Column(Boolean, nullable=False, default=True)
    timestamp = Column(BigInteger, nullable=False)           # epoch ms
    status = Column(String(16), nullable=False, index=True)  # pending, synced, failed


class MapPlotRecord(Base):
    """Farm plot outline captured offline."""
    __tablename__ = "map_plots"

    id = Column(String(64), primary_key=True)
    farmer_id = Column(String(64), nullable=False, index=True)
    coordinates = Column(JSON, nullable=False)               # [{"lat": .., "lng": ..}]
    area = Column(Float, nullable=False)                     # hectares
    crop_type = Column(String(80), nullable=False)
    name = Column(String(200), nullable=True)
    perimeter = Column(Float, nullable=True)                 # meters
    accuracy_level = Column(String(16), nullable=True)

    is_offline = Column(Boolean, nullable=False, default=True)
    timestamp = Column(BigInteger, nullable=False)
    status = Column(String(16), nullable=False, index=True)


class InspectionRecord(Base):
    """Commodity inspection captured offline."""
    __tablename__ = "inspections"

    id = Column(String(64), primary_key=True)
    commodity_id = Column(String(64), nullable=False)
    inspector_id = Column(String(64), nullable=False)
    inspection_date = Column(BigInteger, nullable=False)
    notes = Column(Text, nullable=False, default="")
    photos = Column(JSON, nullable=False, default=list)
    gps_location = Column(String(120), nullable=True)

    is_offline = Column(Boolean, nullable=False, default=True)
    timestamp = Column(BigInteger, nullable=False)
    status = Column(String(16), nullable=False, index=True)


class GPSCoordinateRecord(Base):
    """Append-only log of captured positions."""
    __tablename__ = "gps_coordinates"

    id = Column(String(64), primary_key=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=False)
    altitude = Column(Float, nullable=True)
    source = Column(String(16), nullable=False, index=True)  # manual, auto, map-click

    is_offline = Column(Boolean, nullable=False, default=True)
    timestamp = Column(BigInteger, nullable=False, index=True)


class AuthTokenRecord(Base):
    """Token cached for offline sign-in, one per username."""
    __tablename__ = "auth_tokens"

    username = Column(String(120), primary_key=True)
    token = Column(String(512), nullable=False)
    user_type = Column(String(32), nullable=False)
    role = Column(String(64), nullable=False)
    expires_at = Column(BigInteger, nullable=False)          # epoch ms
    is_offline = Column(Boolean, nullable=False, default=True)


class SettingRecord(Base):
    """Key/value settings such as the last sync time."""
    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=True)
