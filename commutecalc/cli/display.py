"""
Rich rendering helpers for markers and commute results
"""

from typing import List

from rich.table import Table
from rich.text import Text

from commutecalc.core.models import CommuteResult, Marker

ADDRESS_WIDTH = 40


def shorten_address(address: str, width: int = ADDRESS_WIDTH) -> str:
    """Truncate long addresses to width characters with a trailing ellipsis"""
    if len(address) > width:
        return address[:width - 3] + "..."
    return address


def format_commute(result: CommuteResult) -> str:
    """Weekly commute in whole minutes, flagged when lookups failed"""
    minutes = f"{result.weekly_commute_minutes} minutes"
    if result.success:
        return minutes
    if result.is_partial:
        return f"{minutes} (partial)"
    return "unavailable"


def format_result_line(result: CommuteResult) -> str:
    return f"Living at {shorten_address(result.address)} weekly commute time: {format_commute(result)}"


def build_markers_table(markers: List[Marker]) -> Table:
    """Table of markers in list order"""
    table = Table(title="\nMarkers")
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Role", style="cyan", width=12)
    table.add_column("Visits/wk", justify="center", width=9)
    table.add_column("Address", width=ADDRESS_WIDTH)

    for index, marker in enumerate(markers):
        table.add_row(
            str(index),
            marker.role,
            "-" if marker.is_home else str(marker.visits_per_week),
            shorten_address(marker.address),
        )

    return table


def build_results_lines(results: List[CommuteResult]) -> List[Text]:
    """
    One line per home, in the order the homes appear in the marker list

    Homes with failed lookups get a second line naming the destinations
    that could not be resolved.
    """
    lines = []
    for result in results:
        lines.append(Text(format_result_line(result), style="" if result.success else "yellow"))
        if result.failed_destinations:
            failed = ", ".join(shorten_address(d) for d in result.failed_destinations)
            lines.append(Text(f"  could not resolve: {failed}", style="dim"))
    return lines
