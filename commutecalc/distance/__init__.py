"""
Distance Matrix integration for commute analysis
"""

from .client import (
    BadUpstreamResponseError,
    DistanceClientError,
    DistanceMatrixClient,
    NoRouteError,
    RelayClient,
    UpstreamError,
)
from .models import GeocodingResult, LatLng, RelayRequest

__all__ = [
    "DistanceMatrixClient",
    "RelayClient",
    "DistanceClientError",
    "UpstreamError",
    "BadUpstreamResponseError",
    "NoRouteError",
    "GeocodingResult",
    "LatLng",
    "RelayRequest",
]
