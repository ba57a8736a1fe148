"""
Distance Matrix data models
"""

from typing import Optional

from pydantic import BaseModel, Field

from commutecalc.core.models import LatLng


class RelayRequest(BaseModel):
    """Request body accepted by the proxy relay"""

    origin: LatLng = Field(description="Origin coordinate")
    dest: LatLng = Field(description="Destination coordinate")


class GeocodingResult(BaseModel):
    """Result of geocoding an address"""

    address: str = Field(description="Original address")
    lat: float = Field(description="Latitude")
    lng: float = Field(description="Longitude")
    formatted_address: Optional[str] = Field(None, description="Formatted address from API")
    place_id: Optional[str] = Field(None, description="Provider place identifier")

    @property
    def position(self) -> LatLng:
        return LatLng(lat=self.lat, lng=self.lng)
