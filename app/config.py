"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Remote Service Configuration
    remote_api_base_url: str = Field(
        default="https://api.example.com",
        description="Base URL for the remote persistence service"
    )
    remote_api_key: str = Field(
        default="",
        description="API key for authentication"
    )
    remote_api_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for remote service calls"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for API calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Offline Storage
    database_url: str = Field(
        default="sqlite:///./offline_data.db",
        description="SQLAlchemy URL of the local durable store"
    )
    auth_token_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        description="Lifetime of tokens cached for offline login"
    )

    # Boundary Mapping Parameters
    reference_latitude_deg: float = Field(
        default=7.0,
        description="Nominal regional latitude used to convert square degrees to hectares"
    )
    default_point_accuracy: float = Field(
        default=5.0,
        description="Accuracy in meters assumed when the device does not report one"
    )
    boundary_min_points: int = Field(
        default=3,
        description="Minimum number of points required to complete a boundary"
    )
    region_north: float = Field(default=8.55, description="Deployment region northern bound")
    region_south: float = Field(default=4.35, description="Deployment region southern bound")
    region_east: float = Field(default=-7.37, description="Deployment region eastern bound")
    region_west: float = Field(default=-11.49, description="Deployment region western bound")

    # GPS Defaults
    gps_enable_high_accuracy: bool = Field(
        default=True,
        description="Request high accuracy fixes from the location provider"
    )
    gps_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for one-shot position requests"
    )
    gps_maximum_age_seconds: float = Field(
        default=60.0,
        description="Maximum age of a cached fix accepted for one-shot requests"
    )
    gps_watch_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout between fixes while watching the position"
    )
    gps_watch_maximum_age_seconds: float = Field(
        default=1.0,
        description="Maximum age of a cached fix accepted while watching"
    )

    # Connectivity & Offline Authentication
    assume_online: bool = Field(
        default=True,
        description="Initial connectivity state reported to the sync coordinator"
    )
    offline_demo_credentials_enabled: bool = Field(
        default=True,
        description="Allow the built-in field credential table for offline login"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="AgriTrace Boundary Mapping Service",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
