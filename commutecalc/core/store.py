"""
In-memory marker store
Single owner of the marker list; every change is published to subscribers
"""

import logging
from typing import Callable, List, Optional

from .models import LatLng, Marker

MarkerListener = Callable[[List[Marker]], None]


class MarkerStoreError(Exception):
    """Invalid marker operation"""
    pass


class MarkerStore:
    """
    Ordered list of markers plus the current selection

    Mutations are synchronous and run to completion; subscribers receive a
    snapshot of the list after every change.
    """

    def __init__(self, markers: Optional[List[Marker]] = None):
        self._markers: List[Marker] = [m.model_copy(deep=True) for m in markers or []]
        self._selected: Optional[int] = None
        self._listeners: List[MarkerListener] = []
        self.logger = logging.getLogger(__name__)

    def __len__(self) -> int:
        return len(self._markers)

    @property
    def selected(self) -> Optional[int]:
        """Index of the selected marker, if any"""
        return self._selected

    @property
    def homes(self) -> List[Marker]:
        return [m for m in self.snapshot() if m.is_home]

    @property
    def destinations(self) -> List[Marker]:
        return [m for m in self.snapshot() if not m.is_home]

    def snapshot(self) -> List[Marker]:
        """Deep copy of the current marker list"""
        return [m.model_copy(deep=True) for m in self._markers]

    def get(self, index: int) -> Marker:
        return self._marker_at(index).model_copy(deep=True)

    def subscribe(self, listener: MarkerListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: MarkerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_marker(self, position: LatLng, address: str) -> Marker:
        """
        Add a destination marker with no weekly visits

        Args:
            position: Marker coordinates
            address: Display address

        Returns:
            Copy of the new marker
        """
        marker = Marker(position=position, address=address)
        self._markers.append(marker)
        self.logger.debug(f"Added marker {len(self._markers) - 1}: {address}")
        self._notify()
        return marker.model_copy(deep=True)

    def delete_marker(self, index: int) -> Marker:
        """Remove a marker; selection is cleared first"""
        self._marker_at(index)
        self._selected = None
        removed = self._markers.pop(index)
        self.logger.debug(f"Deleted marker {index}: {removed.address}")
        self._notify()
        return removed

    def toggle_home(self, index: int) -> Marker:
        """Flip a marker between home and destination; visits reset to 0"""
        marker = self._marker_at(index)
        # Reset visits first so the home/visits validator never sees both set
        marker.visits_per_week = 0
        marker.is_home = not marker.is_home
        self._notify()
        return marker.model_copy(deep=True)

    def increment_visits(self, index: int) -> Marker:
        marker = self._marker_at(index)
        if marker.is_home:
            raise MarkerStoreError(f"Marker {index} is a home; visits apply to destinations only")
        marker.visits_per_week += 1
        self._notify()
        return marker.model_copy(deep=True)

    def decrement_visits(self, index: int) -> Marker:
        """Decrease weekly visits, floored at zero (no change event at zero)"""
        marker = self._marker_at(index)
        if marker.visits_per_week > 0:
            marker.visits_per_week -= 1
            self._notify()
        return marker.model_copy(deep=True)

    def select(self, index: int) -> None:
        self._marker_at(index)
        self._selected = index

    def clear_selection(self) -> None:
        self._selected = None

    def _marker_at(self, index: int) -> Marker:
        if not 0 <= index < len(self._markers):
            raise MarkerStoreError(f"No marker at index {index} ({len(self._markers)} markers)")
        return self._markers[index]

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.error(f"Marker listener {listener!r} failed: {e}")
