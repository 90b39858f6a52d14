"""
CLI for the artifact cache.

Commands:
    artcache fetch LOCATION... - Resolve locations into local files
    artcache stat [PATH]       - Show free disk space against the target
    artcache config            - Show current configuration
    artcache version           - Print version
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from artcache import __version__
from artcache.cache.disk_space import volume_stat
from artcache.config import Settings, clear_settings_cache, get_settings
from artcache.exceptions import ConfigurationError, FetchError, NotFileBackedError
from artcache.factory import build_fetcher, build_resource_loader
from artcache.logging import setup_logging

app = typer.Typer(
    name="artcache",
    help="Artifact cache - content-addressed downloads with free-space-aware LRU eviction",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError:
        return None


def _require_settings() -> Settings:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'artcache config' to see what's wrong."
        )
        raise typer.Exit(1)
    return settings


@app.command()
def fetch(
    locations: Annotated[
        list[str],
        typer.Argument(help="Paths, file:, http(s): or package: locations"),
    ],
) -> None:
    """Resolve locations into local files.

    Remote artifacts are downloaded once into the download directory.
    Least recently used files are evicted when free disk space drops
    below the configured target.
    """
    settings = _require_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    try:
        fetcher = build_fetcher(settings)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Resolved Artifacts", show_header=True)
    table.add_column("Location", style="cyan")
    table.add_column("Local File", style="green")

    failed = False
    with fetcher:
        loader = build_resource_loader(settings, fetcher)
        for location in locations:
            try:
                resource = loader.get_resource(location)
                local = str(resource.as_file())
            except NotFileBackedError:
                local = "[dim]not file backed[/dim]"
            except (FetchError, ConfigurationError) as e:
                error_console.print(f"[red]Error:[/red] {e}")
                failed = True
                continue
            table.add_row(location, local)

    console.print(table)
    if failed:
        raise typer.Exit(1)


@app.command()
def stat(
    path: Annotated[
        Optional[Path],
        typer.Argument(help="Path on the volume to inspect (default: download dir)"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print machine-readable JSON"),
    ] = False,
) -> None:
    """Show free disk space of a volume against the eviction target."""
    settings = _require_settings()
    target_path = path if path is not None else settings.DOWNLOAD_DIR
    volume = volume_stat(target_path)
    target = settings.TARGET_FREE_SPACE_RATIO
    below = volume.ratio < target

    if as_json:
        payload = {
            "path": str(target_path),
            "free_bytes": volume.free_bytes,
            "total_bytes": volume.total_bytes,
            "free_ratio": volume.ratio,
            "target_free_space_ratio": target,
            "below_target": below,
        }
        typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())
        return

    table = Table(title="Disk Space", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Path", str(target_path))
    table.add_row("Free", f"{volume.free_bytes:,} bytes")
    table.add_row("Total", f"{volume.total_bytes:,} bytes")
    table.add_row("Free Space", f"{volume.percent_free:.2f}%")
    table.add_row("Target Free Space", f">{100 * target:.2f}%")
    console.print(table)

    if below:
        console.print("[yellow]Below target: cached artifacts will be evicted.[/yellow]")


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]Artifact Cache Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print()
        error_console.print("Check these environment variables:")
        error_console.print("  - TARGET_FREE_SPACE_RATIO (between 0.0 and 1.0)")
        error_console.print("  - FETCH_TIMEOUT_SECONDS (greater than 0)")
        error_console.print("  - LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"artifact-cache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
