"""
Main CLI application for CommuteCalc
Provides commands for computing commutes, running the relay and managing config
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from commutecalc.config.manager import ConfigManager, ConfigManagerError
from commutecalc.config.models import AppConfig

from .commute_command import CommuteCommandError, run_commute

# Initialize Typer app
app = typer.Typer(
    name="commutecalc",
    help="CommuteCalc - Compare weekly commute time from candidate homes",
    add_completion=False,
)

# Console for rich output
console = Console()


def setup_logging(level: str) -> None:
    """Route log records through Rich"""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def load_config(config_path: Optional[Path]) -> AppConfig:
    """Load config or exit with an error message"""
    try:
        config = ConfigManager().load_config(config_path)
    except ConfigManagerError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    # --verbose wins over the configured level
    root = logging.getLogger()
    if root.level != logging.DEBUG:
        root.setLevel(config.log_level)

    return config


@app.command()
def commute(
    markers_file: Path = typer.Argument(..., help="YAML/JSON file listing homes and destinations"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
    direct: bool = typer.Option(False, "--direct", help="Call the Distance Matrix API directly instead of the relay"),
    relay_url: Optional[str] = typer.Option(None, "--relay-url", help="Override the relay endpoint"),
    factor: Optional[float] = typer.Option(None, "--factor", help="Round trip factor applied to each duration"),
    max_concurrent: Optional[int] = typer.Option(None, "--max-concurrent", help="Maximum in-flight lookups"),
):
    """
    Calculate weekly commute time for every home in a markers file

    Examples:
        commutecalc commute markers.yaml
        commutecalc commute markers.json --direct --max-concurrent 4
        commutecalc commute markers.yaml --relay-url https://relay.example.com/distance
    """
    config = load_config(config_path)

    overrides = {}
    if relay_url is not None:
        overrides["relay_url"] = relay_url
    if factor is not None:
        overrides["round_trip_factor"] = factor
    if max_concurrent is not None:
        overrides["max_concurrent"] = max_concurrent

    if overrides:
        try:
            config.aggregator = config.aggregator.model_validate(
                {**config.aggregator.model_dump(), **overrides}
            )
        except ValueError as e:
            console.print(f"[red]Invalid option: {e}[/red]")
            raise typer.Exit(1)

    try:
        asyncio.run(run_commute(markers_file, config, direct=direct))
    except CommuteCommandError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Commute calculation cancelled by user[/yellow]")
        raise typer.Exit(0)


@app.command()
def serve(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Run the Distance Matrix proxy relay"""
    import uvicorn

    from commutecalc.relay.app import create_app

    config = load_config(config_path)

    try:
        relay_app = create_app(config)
    except ValueError as e:
        console.print(f"[red]Relay error: {e}[/red]")
        raise typer.Exit(1)

    bind_host = host or config.relay.host
    bind_port = port or config.relay.port
    console.print(f"[cyan]Relay listening on http://{bind_host}:{bind_port}[/cyan]")
    console.print(f"Allowed origins: {', '.join(config.relay.allowed_origins)}")

    uvicorn.run(relay_app, host=bind_host, port=bind_port, log_level=config.log_level.lower())


@app.command(name="init-config")
def init_config(
    path: Optional[Path] = typer.Option(None, "--path", help="Where to write the config file"),
    markers: Optional[Path] = typer.Option(None, "--markers", help="Also write an example markers file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing files"),
):
    """Create a configuration file with default settings"""
    manager = ConfigManager()

    try:
        created = manager.create_default_config(path, overwrite=force)
        console.print(f"[green]✓ Created configuration: {created}[/green]")

        if markers is not None:
            created_markers = manager.create_example_markers(markers, overwrite=force)
            console.print(f"[green]✓ Created example markers: {created_markers}[/green]")
    except ConfigManagerError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command(name="show-config")
def show_config(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
):
    """Show the effective configuration"""
    config = load_config(config_path)
    console.print_json(config.model_dump_json())


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    CommuteCalc - Weekly commute estimates for candidate homes

    Mark candidate homes and the places you drive to each week, and compare
    the total weekly driving time from each home.
    """
    setup_logging("DEBUG" if verbose else "WARNING")


def main():
    """Main entry point for CLI"""
    # Load environment variables
    from dotenv import load_dotenv
    load_dotenv()

    app()


if __name__ == "__main__":
    main()
