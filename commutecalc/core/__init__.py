"""
Core models and marker state for CommuteCalc
"""

from .models import CommuteResult, LatLng, Marker
from .store import MarkerStore, MarkerStoreError

__all__ = [
    "LatLng",
    "Marker",
    "CommuteResult",
    "MarkerStore",
    "MarkerStoreError",
]
