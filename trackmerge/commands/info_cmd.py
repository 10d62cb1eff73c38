"""Info command for trackmerge CLI."""

from __future__ import annotations

from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.table import Table

from trackmerge.core.diagnostics import check_data_quality, document_inventory
from trackmerge.core.errors import DocumentFormatError
from trackmerge.core.geo import format_distance, format_duration
from trackmerge.io.json_documents import read_documents

console = Console()


def info(
    inputs: List[Path] = typer.Argument(..., help="JSON document bundles", exists=True, dir_okay=False),
) -> None:
    """Show distance, duration, elevation and data quality per document."""
    docs = []
    try:
        for path in inputs:
            docs.extend(read_documents(path))
    except DocumentFormatError as e:
        console.print(f"[bold red]❌ Could not load documents:[/] {e}")
        raise typer.Exit(1)

    table = Table(title="Documents")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Tracks", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Distance", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Gain/Loss", justify="right")
    table.add_column("Center")

    warnings = []
    for doc in docs:
        inv = document_inventory(doc)
        center = inv["center"]
        table.add_row(
            doc.id,
            doc.display_name,
            str(inv["track_count"]),
            str(inv["point_count"]),
            format_distance(inv["distance_m"]),
            format_duration(inv["duration_s"]),
            f"+{inv['elevation_gain_m']:.0f} / -{inv['elevation_loss_m']:.0f} m",
            f"{center['lat']:.5f}, {center['lon']:.5f}",
        )
        quality = check_data_quality(doc)
        if quality["bad_timestamps"]:
            warnings.append(f"{doc.id}: {len(quality['bad_timestamps'])} unparseable timestamp(s)")
        if quality["empty_tracks"]:
            warnings.append(f"{doc.id}: {len(quality['empty_tracks'])} empty track(s)")
        if quality["suspicious_coords"]:
            warnings.append(f"{doc.id}: {len(quality['suspicious_coords'])} suspicious coordinate(s)")

    console.print(table)
    for w in warnings:
        console.print(f"[yellow]⚠ {w}[/]")
