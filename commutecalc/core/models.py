"""
Core data models for commute estimation
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LatLng(BaseModel):
    """Geographic coordinate pair"""

    lat: float = Field(description="Latitude", ge=-90, le=90)
    lng: float = Field(description="Longitude", ge=-180, le=180)

    def as_param(self) -> str:
        """Format as the comma separated pair the Distance Matrix API expects"""
        return f"{self.lat},{self.lng}"


class Marker(BaseModel):
    """
    A location placed by the user
    Either a candidate home or a destination visited from home
    """

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    position: LatLng = Field(..., description="Marker coordinates")
    address: str = Field(..., description="Display address, typed or geocoded")
    is_home: bool = Field(False, description="Candidate home rather than destination")
    visits_per_week: int = Field(
        0, ge=0, description="Weekly trips to this destination (destinations only)"
    )

    @model_validator(mode="after")
    def validate_home_visits(self):
        """Visit counts only apply to destinations"""
        if self.is_home and self.visits_per_week:
            raise ValueError("Home markers cannot have visits per week")
        return self

    @property
    def role(self) -> str:
        return "home" if self.is_home else "destination"


class CommuteResult(BaseModel):
    """Weekly commute estimate for one home marker"""

    address: str = Field(description="Home address at aggregation time")
    weekly_commute_seconds: int = Field(
        0, ge=0, description="Sum of weighted round trips that were resolved"
    )
    success: bool = Field(True, description="Whether every destination was resolved")
    failed_destinations: List[str] = Field(
        default_factory=list, description="Destinations whose lookup failed"
    )
    destination_count: int = Field(0, ge=0, description="Destinations looked up for this home")
    error_message: Optional[str] = Field(None, description="Error summary if failed")
    calculated_at: datetime = Field(default_factory=datetime.utcnow, description="When calculated")

    @property
    def weekly_commute_minutes(self) -> int:
        return self.weekly_commute_seconds // 60

    @property
    def is_partial(self) -> bool:
        """Some but not all destination lookups failed"""
        return not self.success and 0 < len(self.failed_destinations) < self.destination_count
