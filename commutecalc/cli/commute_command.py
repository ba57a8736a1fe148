"""
Commute command implementation
Loads a markers file, resolves positions and runs one aggregation pass
"""

import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from commutecalc.aggregator.service import CommuteAggregator
from commutecalc.aggregator.session import CommuteSession
from commutecalc.config.models import AppConfig, MarkerEntry
from commutecalc.config.parser import ConfigParser, ConfigParserError
from commutecalc.core.models import CommuteResult, Marker
from commutecalc.core.store import MarkerStore
from commutecalc.distance.client import BaseDistanceClient, DistanceMatrixClient, RelayClient

from .display import build_markers_table, build_results_lines

console = Console()
logger = logging.getLogger(__name__)


class CommuteCommandError(Exception):
    """Commute command failed before aggregation"""
    pass


def build_distance_client(config: AppConfig, direct: bool = False) -> BaseDistanceClient:
    """
    Pick the distance client for aggregation

    Args:
        config: Application config
        direct: Call the provider directly instead of going through the relay

    Raises:
        CommuteCommandError: If direct mode is requested without an API key
    """
    if not direct:
        return RelayClient.from_config(config.aggregator)

    try:
        return DistanceMatrixClient.from_config(
            config.provider,
            max_retries=config.aggregator.max_retries,
            retry_delay=config.aggregator.retry_delay,
        )
    except ValueError as e:
        raise CommuteCommandError(str(e))


async def resolve_markers(
    entries: List[MarkerEntry],
    geocoder: Optional[DistanceMatrixClient] = None,
) -> List[Marker]:
    """
    Turn file entries into markers, geocoding entries without coordinates

    Raises:
        CommuteCommandError: If an address cannot be geocoded
    """
    markers = []

    for entry in entries:
        if entry.has_position:
            markers.append(ConfigParser.entry_to_marker(entry))
            continue

        if geocoder is None:
            raise CommuteCommandError(
                f"Marker '{entry.address}' has no coordinates and geocoding is unavailable"
            )

        geo = await geocoder.geocode(entry.address)
        if geo is None:
            raise CommuteCommandError(f"Could not geocode address: {entry.address}")

        logger.info(f"Geocoded {entry.address} -> {geo.lat},{geo.lng}")
        markers.append(ConfigParser.entry_to_marker(entry, geo.position))

    return markers


async def run_commute(
    markers_file: Path,
    config: AppConfig,
    direct: bool = False,
    show_markers: bool = True,
) -> List[CommuteResult]:
    """
    Compute weekly commutes for the markers in a file

    Args:
        markers_file: YAML or JSON markers file
        config: Application config
        direct: Call the provider directly instead of the relay
        show_markers: Print the marker table before computing

    Returns:
        One CommuteResult per home marker
    """
    try:
        entries = ConfigParser.parse_markers(markers_file)
    except ConfigParserError as e:
        raise CommuteCommandError(str(e))

    distance_client = build_distance_client(config, direct)

    geocoder = None
    if any(not entry.has_position for entry in entries):
        if isinstance(distance_client, DistanceMatrixClient):
            geocoder = distance_client
        else:
            try:
                geocoder = DistanceMatrixClient.from_config(config.provider)
            except ValueError as e:
                raise CommuteCommandError(f"Geocoding needs an API key: {e}")

    markers = await resolve_markers(entries, geocoder)

    store = MarkerStore(markers)
    if show_markers:
        console.print(build_markers_table(store.snapshot()))

    if not store.homes:
        console.print("[yellow]No home markers found; mark at least one entry with 'home: true'[/yellow]")
        return []

    aggregator = CommuteAggregator(
        distance_client,
        round_trip_factor=config.aggregator.round_trip_factor,
        max_concurrent=config.aggregator.max_concurrent,
    )
    session = CommuteSession(store, aggregator)

    try:
        with console.status("[cyan]Calculating weekly commutes...[/cyan]"):
            session.refresh()
            results = await session.wait()
    finally:
        await session.close()

    if session.last_error is not None:
        raise CommuteCommandError(f"Aggregation failed: {session.last_error}")

    console.print("\n[bold]Weekly Commute by Home[/bold]")
    for line in build_results_lines(results):
        console.print(line, soft_wrap=True)

    failed = [r for r in results if not r.success]
    if failed:
        console.print(f"[yellow]⚠ {len(failed)} homes have destinations that could not be resolved[/yellow]")
    else:
        console.print(f"[green]✓ Calculated weekly commutes for {len(results)} homes[/green]")

    return results
