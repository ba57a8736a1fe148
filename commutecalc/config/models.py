"""
Configuration models for CommuteCalc
Loaded from YAML/JSON files; credentials stay in the environment
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ALLOWED_ORIGIN = "https://ihatedriving.web.app"


class ConfigFormat(str, Enum):
    """Supported configuration file formats"""

    YAML = "yaml"
    JSON = "json"


class ProviderConfig(BaseModel):
    """Distance provider settings (used server side by the relay)"""

    distance_matrix_url: str = Field(
        "https://maps.googleapis.com/maps/api/distancematrix/json",
        description="Distance Matrix endpoint"
    )
    geocode_url: str = Field(
        "https://maps.googleapis.com/maps/api/geocode/json",
        description="Geocoding endpoint"
    )
    units: str = Field("imperial", description="Unit system for matrix queries")
    timeout: float = Field(30, gt=0, description="Request timeout in seconds")
    api_key_env: str = Field(
        "GOOGLE_MAPS_API_KEY",
        description="Environment variable holding the API key"
    )

    @field_validator("units")
    def validate_units(cls, v):
        """Validate unit system"""
        if v not in {"imperial", "metric"}:
            raise ValueError(f"Invalid units: {v}. Must be 'imperial' or 'metric'")
        return v


class RelayConfig(BaseModel):
    """Proxy relay server settings"""

    host: str = Field("127.0.0.1", description="Bind address")
    port: int = Field(8080, ge=1, le=65535, description="Bind port")
    allowed_origins: List[str] = Field(
        default=[DEFAULT_ALLOWED_ORIGIN],
        description="Origins allowed to call the relay"
    )
    require_origin: bool = Field(
        False,
        description="Reject requests that carry no Origin header"
    )

    @field_validator("allowed_origins")
    def validate_origins(cls, v):
        """Strip trailing slashes so header comparison is exact"""
        return [origin.rstrip("/") for origin in v]


class AggregatorConfig(BaseModel):
    """Commute aggregation settings"""

    relay_url: str = Field(
        "http://127.0.0.1:8080/distance",
        description="Proxy relay endpoint"
    )
    origin_header: Optional[str] = Field(
        DEFAULT_ALLOWED_ORIGIN,
        description="Origin header sent to the relay"
    )
    round_trip_factor: float = Field(
        2.0,
        gt=0,
        description="Multiplier applied to each one-way duration"
    )
    max_concurrent: Optional[int] = Field(
        10,
        ge=1,
        description="Maximum in-flight pair lookups (None for unbounded)"
    )
    max_retries: int = Field(2, ge=0, le=10, description="Retries for transient failures")
    retry_delay: float = Field(1.0, ge=0, description="Base backoff delay in seconds")
    timeout: float = Field(30, gt=0, description="Request timeout in seconds")


class AppConfig(BaseModel):
    """Complete CommuteCalc configuration"""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    log_level: str = Field("WARNING", description="Root log level")

    @field_validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level name"""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


class MarkerEntry(BaseModel):
    """One marker as written in a markers file"""

    address: str = Field(..., min_length=1, description="Display address")
    lat: Optional[float] = Field(None, ge=-90, le=90, description="Latitude")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="Longitude")
    home: bool = Field(False, description="Candidate home")
    visits: int = Field(0, ge=0, description="Weekly visits (destinations only)")

    @model_validator(mode="after")
    def validate_entry(self):
        """Coordinates come in pairs; homes have no visits"""
        if (self.lat is None) != (self.lng is None):
            raise ValueError(f"Marker '{self.address}' needs both lat and lng, or neither")
        if self.home and self.visits:
            raise ValueError(f"Home marker '{self.address}' cannot have visits")
        return self

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lng is not None
