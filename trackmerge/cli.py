#!/usr/bin/env python3
"""
trackmerge - GPS track merge tool
Main CLI entry point
"""

from __future__ import annotations

import typer

from trackmerge.commands import config_cmd, info_cmd, merge_cmd

app = typer.Typer(
    name="trackmerge",
    help="Merge GPS tracks sequentially, by time, simplified or interpolated",
    no_args_is_help=True,
    add_completion=True,
)

app.command(name="merge", help="Merge two or more track documents")(merge_cmd.merge)
app.command(name="info", help="Summarize track documents")(info_cmd.info)

app.add_typer(config_cmd.app, name="config", help="Manage configuration settings")


@app.callback()
def callback() -> None:
    """
    trackmerge - GPS track merge tool

    Primary workflow:
      merge   - Combine documents into one merged track (JSON bundles in/out)

    Utilities:
      info    - Per-document distance, duration, elevation and data quality
      config  - Manage default merge options
    """
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
