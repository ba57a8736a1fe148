"""
Commute aggregation service
Turns a marker list into weekly commute estimates per home
"""

import asyncio
import logging
from typing import List, NamedTuple, Optional, Protocol

from commutecalc.core.models import CommuteResult, LatLng, Marker
from commutecalc.distance.client import DistanceClientError


class DistanceSource(Protocol):
    async def get_duration(self, origin: LatLng, dest: LatLng) -> float:
        ...


class PairOutcome(NamedTuple):
    """Settled lookup for one (home, destination) pair"""

    home_index: int
    destination: Marker
    seconds: int = 0
    error: Optional[str] = None


class CommuteAggregator:
    """
    Computes weekly commute time for every home marker

    One distance lookup is issued per (home, destination) pair. All lookups
    start together and results are only published once every lookup has
    settled.
    """

    def __init__(
        self,
        distance_client: DistanceSource,
        round_trip_factor: float = 2.0,
        max_concurrent: Optional[int] = None,
    ):
        if round_trip_factor <= 0:
            raise ValueError("round_trip_factor must be positive")
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.client = distance_client
        self.round_trip_factor = round_trip_factor
        self.max_concurrent = max_concurrent
        self.logger = logging.getLogger(__name__)

    def pair_contribution(self, duration_seconds: float, visits_per_week: int) -> int:
        """Weighted round trip seconds for one pair, truncated toward zero"""
        return int(duration_seconds * self.round_trip_factor * visits_per_week)

    async def aggregate(self, markers: List[Marker]) -> List[CommuteResult]:
        """
        Aggregate weekly commute times

        Args:
            markers: Ordered marker list (homes and destinations mixed)

        Returns:
            One CommuteResult per home, in the homes' original order
        """
        homes = [m for m in markers if m.is_home]
        destinations = [m for m in markers if not m.is_home]

        if not homes:
            return []

        self.logger.info(
            f"Aggregating commutes for {len(homes)} homes x {len(destinations)} destinations"
        )

        semaphore = asyncio.Semaphore(self.max_concurrent) if self.max_concurrent else None

        async def lookup(home_index: int, home: Marker, dest: Marker) -> PairOutcome:
            try:
                if semaphore is None:
                    duration = await self.client.get_duration(home.position, dest.position)
                else:
                    async with semaphore:
                        duration = await self.client.get_duration(home.position, dest.position)
            except DistanceClientError as e:
                self.logger.warning(
                    f"Lookup failed for {home.address} -> {dest.address}: {e}"
                )
                return PairOutcome(home_index, dest, error=str(e))

            return PairOutcome(
                home_index, dest, seconds=self.pair_contribution(duration, dest.visits_per_week)
            )

        pairs = [
            (home_index, home, dest)
            for home_index, home in enumerate(homes)
            for dest in destinations
        ]
        outcomes = await asyncio.gather(
            *(lookup(*pair) for pair in pairs), return_exceptions=True
        )

        totals = [0] * len(homes)
        failures: List[List[str]] = [[] for _ in homes]
        errors: List[List[str]] = [[] for _ in homes]

        for (home_index, home, dest), outcome in zip(pairs, outcomes):
            if isinstance(outcome, BaseException):
                self.logger.error(
                    f"Unexpected error for {home.address} -> {dest.address}: {outcome!r}"
                )
                failures[home_index].append(dest.address)
                errors[home_index].append(f"{dest.address}: {outcome}")
            elif outcome.error is not None:
                failures[home_index].append(dest.address)
                errors[home_index].append(f"{dest.address}: {outcome.error}")
            else:
                totals[home_index] += outcome.seconds

        results = []
        for home_index, home in enumerate(homes):
            failed = failures[home_index]
            results.append(CommuteResult(
                address=home.address,
                weekly_commute_seconds=totals[home_index],
                destination_count=len(destinations),
                success=not failed,
                failed_destinations=failed,
                error_message="; ".join(errors[home_index]) or None,
            ))

        failed_homes = sum(1 for r in results if not r.success)
        if failed_homes:
            self.logger.warning(f"{failed_homes} of {len(results)} homes have failed lookups")
        self.logger.info(f"Aggregated {len(results)} commute results")

        return results
