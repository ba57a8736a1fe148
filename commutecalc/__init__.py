"""
CommuteCalc: Weekly Commute Estimates for Candidate Homes

Place candidate homes and regular destinations, tag how often you visit each
destination, and compare the weekly driving time from every home.
"""

__version__ = "0.1.0"

from .core.models import CommuteResult, LatLng, Marker
from .core.store import MarkerStore

__all__ = [
    "LatLng",
    "Marker",
    "CommuteResult",
    "MarkerStore",
]
