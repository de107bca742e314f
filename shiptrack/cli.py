"""shiptrack CLI: AIS CSV ingestion into latest vessel state and trajectories.

Commands:
  ingest       ingest one or more CSV files and list vessels
  fetch-noaa   download a plain-CSV AIS file and ingest it
  noaa-urls    list NOAA daily file URLs for a date range
  regions      show the named bounding-box presets
  serve        run the HTTP API
"""
from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from shiptrack.config import settings
from shiptrack.errors import IngestionFailed
from shiptrack.modules.classifiers import known_vessel_categories

app = typer.Typer(
    name="shiptrack",
    help="AIS position ingestion: latest vessel state and recent trajectories.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

VESSEL_TYPE_HELP = "Vessel category to keep (repeatable): " + ", ".join(known_vessel_categories())


def _check_vessel_types(values: Optional[List[str]]) -> Optional[List[str]]:
    known = {c.lower() for c in known_vessel_categories()}
    unknown = [v for v in values or [] if v.strip().lower() not in known]
    if unknown:
        raise typer.BadParameter(
            f"unknown vessel type {', '.join(unknown)}; choose from {', '.join(known_vessel_categories())}"
        )
    return values


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    logging.basicConfig(level=logging.DEBUG if verbose else settings.LOG_LEVEL)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("ingest")
def ingest(
    files: List[Path] = typer.Argument(..., help="CSV files (generic AIS or NOAA dialect)"),
    max_records: int = typer.Option(settings.MAX_RECORDS, "--max-records", help="Record budget per file"),
    region: Optional[str] = typer.Option(None, "--region", help="Named region preset (see `regions`)"),
    bbox: Optional[str] = typer.Option(None, "--bbox", help="south,west,north,east"),
    vessel_type: Optional[List[str]] = typer.Option(
        None, "--vessel-type", "-t", help=VESSEL_TYPE_HELP, callback=_check_vessel_types,
    ),
    recency_hours: Optional[float] = typer.Option(None, "--recency-hours", help="Drop records older than this"),
    filter_config: Optional[Path] = typer.Option(None, "--filter-config", help="YAML filter file"),
    whole_file: bool = typer.Option(False, "--whole-file", help="Parse each file in memory instead of streaming"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Cancel after this many seconds"),
    sort_by: str = typer.Option("name", "--sort-by", help="name, speed, mmsi, destination, type, timestamp"),
    search: Optional[str] = typer.Option(None, "--search", help="Filter output by name or MMSI"),
    limit: int = typer.Option(20, "--limit", help="Rows to show"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
):
    """Ingest AIS CSV files and show the latest state per vessel."""
    from shiptrack.modules.ingest import IngestOptions, ingest_files
    from shiptrack.modules.progress import CancellationToken
    from shiptrack.modules.vessel_store import search_vessels, sort_vessels
    from shiptrack.utils.vessel_filter import build_filter_config, load_filter_config

    try:
        if filter_config:
            filters = load_filter_config(filter_config)
        else:
            filters = build_filter_config(
                bbox=bbox, region=region, vessel_types=vessel_type, recency_window_hours=recency_hours,
            )
    except (OSError, ValueError) as e:
        console.print(f"[red]Invalid filter: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    token = CancellationToken()
    if timeout:
        token.cancel_after(timeout)

    try:
        with _IngestProgress(disable=as_json) as on_progress:
            options = IngestOptions(
                max_records=max_records,
                filters=filters,
                progress_callback=on_progress,
                cancel_token=token,
            )
            result = ingest_files(files, options, streaming=not whole_file)
    except ValueError as e:
        console.print(f"[red]Ingestion failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        token.dispose()

    meta = result.metadata
    if meta.failed_sources and not result.vessels:
        for failure in meta.failed_sources:
            console.print(f"[red]{escape(failure['error'])}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    vessels = search_vessels(result.vessels, search) if search else result.vessels
    try:
        vessels = sort_vessels(vessels, sort_by, ascending=sort_by not in ("speed", "timestamp"))
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    _print_vessel_table(console, vessels[:limit], result.trajectories, total=len(vessels))
    _print_run_summary(console, result)


@app.command("fetch-noaa")
def fetch_noaa(
    url: str = typer.Argument(..., help="URL of a plain-CSV AIS file"),
    max_records: int = typer.Option(settings.MAX_RECORDS, "--max-records"),
    region: Optional[str] = typer.Option(None, "--region"),
    vessel_type: Optional[List[str]] = typer.Option(
        None, "--vessel-type", "-t", help=VESSEL_TYPE_HELP, callback=_check_vessel_types,
    ),
    limit: int = typer.Option(20, "--limit"),
):
    """Download an AIS CSV and ingest it."""
    from shiptrack.modules.ingest import IngestOptions
    from shiptrack.modules.noaa_client import load_noaa_data
    from shiptrack.modules.vessel_store import sort_vessels
    from shiptrack.utils.vessel_filter import build_filter_config

    try:
        filters = build_filter_config(region=region, vessel_types=vessel_type)
        with _IngestProgress() as on_progress:
            result = load_noaa_data(
                url,
                IngestOptions(max_records=max_records, filters=filters, progress_callback=on_progress),
            )
    except IngestionFailed as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid filter: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    vessels = sort_vessels(result.vessels, "name")
    _print_vessel_table(console, vessels[:limit], result.trajectories, total=len(vessels))
    _print_run_summary(console, result)


@app.command("noaa-urls")
def noaa_urls(
    start: str = typer.Argument(..., help="Start date (YYYY-MM-DD)"),
    end: str = typer.Argument(..., help="End date (YYYY-MM-DD)"),
):
    """List NOAA daily AIS file URLs for a date range."""
    from shiptrack.modules.noaa_client import noaa_urls_for_range

    try:
        urls = noaa_urls_for_range(date.fromisoformat(start), date.fromisoformat(end))
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    for url in urls:
        typer.echo(url)


@app.command("regions")
def regions():
    """Show the named bounding-box presets."""
    from shiptrack.utils.vessel_filter import REGION_PRESETS

    table = Table(title="Region presets")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("South")
    table.add_column("West")
    table.add_column("North")
    table.add_column("East")
    for key, (name, box) in REGION_PRESETS.items():
        table.add_row(key, name, str(box.south), str(box.west), str(box.north), str(box.east))
    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the HTTP API."""
    import uvicorn

    console.print(f"API running at [cyan]http://{host}:{port}[/cyan] (Ctrl+C to stop)")
    uvicorn.run("shiptrack.main:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _IngestProgress:
    """Rich progress bar fed by ingestion progress events."""

    def __init__(self, disable: bool = False) -> None:
        self._progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            transient=True,
            disable=disable,
        )
        self._task = None

    def _on_progress(self, event) -> None:
        self._progress.update(
            self._task,
            description=event.stage.value.capitalize(),
            completed=event.percentage,
        )

    def __enter__(self):
        self._progress.start()
        self._task = self._progress.add_task("Processing", total=100)
        return self._on_progress

    def __exit__(self, *exc_info) -> None:
        self._progress.stop()


def _print_vessel_table(con: Console, vessels, trajectories, total: int) -> None:
    """Print a Rich table of vessel states."""
    table = Table(title=f"Vessels ({len(vessels)} of {total})")
    table.add_column("MMSI", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Position")
    table.add_column("SOG (kn)", justify="right")
    table.add_column("Heading", justify="right")
    table.add_column("Last seen (UTC)")
    table.add_column("Track", justify="right")
    for v in vessels:
        table.add_row(
            v.mmsi,
            v.name,
            v.vessel_type_category,
            v.nav_status_category,
            f"{v.latitude:.4f}, {v.longitude:.4f}",
            f"{v.speed_knots:.1f}",
            f"{v.heading_degrees:.0f}",
            v.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            str(len(trajectories.get(v.mmsi, []))),
        )
    con.print(table)


def _print_run_summary(con: Console, result) -> None:
    meta = result.metadata
    con.print(
        f"Processed [bold]{meta.total_processed:,}[/bold] of {meta.rows_read:,} rows  |  "
        f"Vessels: [bold]{meta.unique_vessel_count:,}[/bold]  |  Source: {meta.source_label}"
    )
    if meta.rejected:
        parts = ", ".join(f"{k.replace('_', ' ')}: {v:,}" for k, v in sorted(meta.rejected.items()))
        con.print(f"[dim]Skipped rows: {parts}[/dim]")
    if meta.truncated:
        con.print("[yellow]Record budget reached; remaining rows were not read.[/yellow]")
    if meta.cancelled:
        con.print("[yellow]Ingestion cancelled; showing partial results.[/yellow]")
    for failure in meta.failed_sources:
        con.print(f"[red]{escape(failure['error'])}[/red]")
