"""Config command for trackmerge CLI."""

from pathlib import Path

import typer
from rich.console import Console

from trackmerge.core.config import load_config
from trackmerge.core.errors import ConfigError

app = typer.Typer()
console = Console()


@app.command("show")
def show():
    """Show current configuration."""
    try:
        cfg = load_config()
    except ConfigError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    summary = cfg.get_config_summary()

    console.print("\n[bold]Current Configuration:[/]")
    console.print(f"  Config file: [cyan]{summary['config_file'] or '(defaults)'}[/]")
    console.print(f"  Strategy: [cyan]{summary['strategy']}[/]")
    console.print(f"  Skip duplicate points: [cyan]{'Enabled' if summary['skip_duplicate_points'] else 'Disabled'}[/]")
    console.print(f"  Include elevation: [cyan]{'Enabled' if summary['include_elevation'] else 'Disabled'}[/]")
    console.print(f"  Smooth transitions: [cyan]{'Enabled' if summary['auto_smooth_transitions'] else 'Disabled'}[/]")
    console.print(f"  Simplification tolerance: [cyan]{summary['simplification_tolerance_meters']} m[/]")
    console.print(f"  Time gap threshold: [cyan]{summary['time_gap_threshold_minutes']} min[/]")
    console.print(f"  Interpolation step: [cyan]{summary['interpolation_step_meters']} m[/]")
    console.print(f"  Max interpolated points: [cyan]{summary['max_interpolated_points']}[/]")
    console.print()


@app.command("export")
def export(output_path: Path = typer.Option(Path("trackmerge.yaml"), "--output", "-o", help="Where to write the template")):
    """Export configuration template."""
    try:
        cfg = load_config()
    except ConfigError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    cfg.export_template(output_path)
    console.print(f"[bold green]✔[/] Configuration template exported to [underline]{output_path}[/]")
    console.print("[dim]Edit this file to change the default merge options[/]")


@app.command("validate")
def validate(config_file: Path = typer.Argument(..., help="Config file to validate")):
    """Validate a configuration file."""
    try:
        cfg = load_config(config_file)
    except ConfigError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {e}")
        raise typer.Exit(1)
    console.print(f"[bold green]✔[/] Configuration file is valid: [underline]{config_file}[/]")
    summary = cfg.get_config_summary()
    console.print(f"  Overridden keys: {', '.join(summary['overridden']) or '(none)'}")
