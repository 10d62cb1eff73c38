"""Merge command for trackmerge CLI."""

from __future__ import annotations

from contextlib import nullcontext
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trackmerge.core.config import load_config
from trackmerge.core.coordinator import MergeSession, MergeSnapshot
from trackmerge.core.diagnostics import merge_inventory
from trackmerge.core.errors import ConfigError, DocumentFormatError, EmptyMergeError, SelectionError
from trackmerge.core.store import DocumentStore
from trackmerge.core.trace import TraceWriter
from trackmerge.io.json_documents import read_documents, write_documents
from trackmerge.model import MergeStatus, MergeStrategy

console = Console()

VERSION = "1.0.0"


STATUS_MESSAGES = {
    MergeStatus.not_enough_documents: "At least two documents are required for merging",
    MergeStatus.no_timestamps: "None of the selected documents have points with timestamps",
    MergeStatus.empty: "The selected documents contain no points",
}


def print_header() -> None:
    console.print(
        Panel.fit(
            f"[bold yellow]TRACKMERGE[/] v{VERSION}\n[italic]Combine GPS tracks[/]",
            border_style="yellow",
            padding=(0, 4),
        )
    )


def display_preview(snapshot: MergeSnapshot) -> None:
    """Print the selected documents and preview statistics."""
    docs = Table(title="Documents (merge order)", show_lines=False)
    docs.add_column("#", justify="right", style="dim")
    docs.add_column("ID", style="cyan")
    docs.add_column("Name")
    docs.add_column("Tracks", justify="right")
    docs.add_column("Points", justify="right")
    for i, d in enumerate(snapshot.included_documents, start=1):
        docs.add_row(str(i), d.id, d.display_name, str(len(d.tracks)), str(d.point_count))
    console.print(docs)

    inv = merge_inventory(snapshot.configuration, snapshot.statistics)
    stats = inv["statistics"]
    table = Table(title="Merge preview", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Strategy", inv["strategy"])
    table.add_row("Original points", str(stats["original_point_count"]))
    table.add_row("Merged points", str(stats["merged_point_count"]))
    table.add_row("Duplicates removed", str(stats["duplicates_removed"]))
    if stats["interpolated_point_count"]:
        table.add_row("Interpolated points", str(stats["interpolated_point_count"]))
    table.add_row("Segments", str(inv["segment_count"]))
    table.add_row("Estimated size", stats["estimated_output_size"])
    console.print(table)


def merge(
    inputs: List[Path] = typer.Argument(..., help="JSON document bundles to merge", exists=True, dir_okay=False),
    strategy: Optional[MergeStrategy] = typer.Option(None, "--strategy", "-s", help="Merge strategy"),
    tolerance: Optional[float] = typer.Option(None, "--tolerance", help="Simplification tolerance in meters", min=0),
    gap_minutes: Optional[float] = typer.Option(None, "--gap-minutes", help="Time gap that starts a new segment (0 disables)", min=0),
    skip_duplicates: Optional[bool] = typer.Option(None, "--skip-duplicates/--keep-duplicates", help="Drop points with an already emitted lat/lon"),
    include_elevation: Optional[bool] = typer.Option(None, "--include-elevation/--no-elevation", help="Simplified: use time-ordered base"),
    smooth: Optional[bool] = typer.Option(None, "--smooth/--no-smooth", help="Interpolated: bridge time gaps"),
    order: Optional[List[str]] = typer.Option(None, "--order", help="Document id to place first (repeatable)"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Document id to leave out (repeatable)"),
    output: Path = typer.Option(Path("merged.json"), "--output", "-o", help="Output JSON bundle"),
    trace_path: Optional[Path] = typer.Option(None, "--trace", help="Write a JSONL trace of the run"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the preview without writing output"),
) -> None:
    """Merge track documents into a single track."""
    print_header()

    try:
        cfg = load_config(config_file)
        options = cfg.merge_options(
            strategy=strategy.value if strategy else None,
            simplification_tolerance_meters=tolerance,
            time_gap_threshold_minutes=gap_minutes,
            skip_duplicate_points=skip_duplicates,
            include_elevation=include_elevation,
            auto_smooth_transitions=smooth,
        )
    except ConfigError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)

    with TraceWriter(trace_path) if trace_path else nullcontext() as trace:
        store = DocumentStore()
        try:
            for path in inputs:
                for doc in read_documents(path, trace=trace):
                    store.add(doc)
        except (DocumentFormatError, ValueError) as e:
            console.print(f"[bold red]❌ Could not load documents:[/] {e}")
            raise typer.Exit(1)

        unknown = [i for i in list(order or []) + list(exclude or []) if i not in store]
        if unknown:
            console.print(f"[bold red]❌ Unknown document id(s):[/] {', '.join(unknown)}")
            raise typer.Exit(1)

        session = MergeSession(store, options, trace=trace)
        with session.coordinator.deferred():
            if order:
                rest = [i for i in store.ids() if i not in order]
                session.set_document_order(list(order) + rest)
            try:
                for doc_id in exclude or []:
                    session.toggle_document(doc_id, False)
            except SelectionError as e:
                console.print(f"[bold red]❌ {e}[/]")
                raise typer.Exit(1)

        snapshot = session.snapshot
        display_preview(snapshot)

        status = snapshot.configuration.status
        if status is not MergeStatus.ok:
            console.print(f"[bold red]❌ {STATUS_MESSAGES[status]}[/]")
            raise typer.Exit(1)

        if dry_run:
            console.print("[dim]Dry run: nothing written[/]")
            return

        try:
            merged = session.commit()
        except EmptyMergeError as e:
            console.print(f"[bold red]❌ {e}[/]")
            raise typer.Exit(1)

        write_documents(output, [merged])
        console.print(
            f"[bold green]✔[/] Merged {merged.point_count} points into [underline]{output}[/] "
            f"([cyan]{merged.metadata.name}[/])"
        )
